from .constants import (
    ENTRY_POINT_V06,
    SIMPLE_ACCOUNT_FACTORY_V06,
    USDT_MAINNET,
    EvmAssetConfig,
    parse_units,
    format_units,
)
from .schemas import (
    UserOperationModel,
    UserOperationGasEstimate,
    UserOperationReceipt,
    parse_quantity,
)
from .ERC20_ABI import (
    encode_transfer,
    encode_balance_of,
    encode_execute,
    decode_uint256,
)

__all__ = [
    "ENTRY_POINT_V06",
    "SIMPLE_ACCOUNT_FACTORY_V06",
    "USDT_MAINNET",
    "EvmAssetConfig",
    "parse_units",
    "format_units",
    "UserOperationModel",
    "UserOperationGasEstimate",
    "UserOperationReceipt",
    "parse_quantity",
    "encode_transfer",
    "encode_balance_of",
    "encode_execute",
    "decode_uint256",
]
