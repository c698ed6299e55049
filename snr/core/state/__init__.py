"""Value layer (account balances) and clocks"""
from snr.core.state.balances import (
    BalanceLedger,
    ValueTransferError,
    InsufficientBalance,
    TransferRejected,
    ReceiverHook,
    VALUE_UNIT,
    format_value,
    parse_value,
)
from snr.core.state.clock import SystemClock, ManualClock, MINUTES, HOURS, DAYS, WEEKS

__all__ = [
    "BalanceLedger",
    "ValueTransferError",
    "InsufficientBalance",
    "TransferRejected",
    "ReceiverHook",
    "VALUE_UNIT",
    "format_value",
    "parse_value",
    "SystemClock",
    "ManualClock",
    "MINUTES",
    "HOURS",
    "DAYS",
    "WEEKS",
]
