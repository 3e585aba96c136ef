"""Contract ABIs used by the web3 submission sink."""

ARBITRAGE_EXECUTOR_ABI = [
    {
        "inputs": [
            {"name": "flashLoanPair", "type": "address"},
            {"name": "startToken", "type": "address"},
            {"name": "borrowAmount", "type": "uint256"},
            {"name": "arbPairs", "type": "address[]"},
            {"name": "arbFees", "type": "uint256[]"},
            {"name": "repayFee", "type": "uint256"},
        ],
        "name": "executeArbitrage",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "startToken", "type": "address"},
            {"name": "startAmount", "type": "uint256"},
            {"name": "arbPairs", "type": "address[]"},
            {"name": "arbFees", "type": "uint256[]"},
        ],
        "name": "executeArbitrageDirect",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

# Uniswap V2 style Sync events (reserve0, reserve1)
SYNC_UINT112_TOPIC = "0x1c411e9a96e071241c2f21f7726b17ae89e3cab4c78be50e062b03a9fffbbad1"
SYNC_UINT256_TOPIC = "0xcf2aa50876cdfbb541206f89af0ee78d44a2abf8d328e37fa4917f982149848a"
