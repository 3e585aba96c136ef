"""Tests for the exceptions module."""

import pytest

from cyclic_arbitrage.exceptions import (
    ConfigurationError,
    CyclicArbitrageError,
    DataError,
    NoFlashLoanPoolError,
    NonceError,
    SubmissionError,
)


def test_base_exception():
    """Test the base exception class."""
    error = CyclicArbitrageError("Test error")
    assert str(error) == "Test error"
    assert error.details == {}

    error_with_details = CyclicArbitrageError("Test error", {"key": "value"})
    assert error_with_details.details == {"key": "value"}


def test_configuration_error():
    error = ConfigurationError("Config error", {"config_file": "test.yaml"})
    assert str(error) == "Config error"
    assert error.details["config_file"] == "test.yaml"
    assert isinstance(error, CyclicArbitrageError)


def test_data_error_carries_pool():
    error = DataError("Bad record", pool="0xabc")
    assert error.pool == "0xabc"
    assert error.details == {}


def test_nonce_error():
    with pytest.raises(CyclicArbitrageError):
        raise NonceError("not initialized")


def test_no_flash_loan_pool_error():
    """Missing loan pool is a submission error in flash-loan mode."""
    error = NoFlashLoanPoolError("USDC", 1000, signature="0xa|0xb")

    assert isinstance(error, SubmissionError)
    assert error.mode == "flash_loan"
    assert error.signature == "0xa|0xb"
    assert error.token == "USDC"
    assert error.amount == 1000
    assert error.details == {"token": "USDC", "amount": 1000}
    assert "USDC" in str(error)


def test_exception_hierarchy():
    for exc_class in (
        ConfigurationError,
        DataError,
        NonceError,
        SubmissionError,
        NoFlashLoanPoolError,
    ):
        assert issubclass(exc_class, CyclicArbitrageError)
        assert issubclass(exc_class, Exception)
