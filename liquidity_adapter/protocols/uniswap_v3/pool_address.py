"""
CREATE2 pool address derivation (no I/O)
"""

from typing import Optional

from eth_abi import encode
from web3 import Web3

from ...errors import ValidationError
from ...types.common import address_key
from ..chains import ChainRegistry, get_chain_registry


def sort_addresses(token_a: str, token_b: str):
    """Canonical (token0, token1) order by numeric address"""
    if address_key(token_a) == address_key(token_b):
        raise ValidationError.same_token(token_a)
    if address_key(token_a) < address_key(token_b):
        return token_a, token_b
    return token_b, token_a


def compute_pool_address(
    deployer: str,
    token_a: str,
    token_b: str,
    fee: int,
    init_code_hash: str,
) -> str:
    """
    keccak256(0xff ++ deployer ++ keccak256(abi.encode(token0, token1, fee)) ++ initCodeHash)[12:]

    Tokens may be passed in either order.

    Returns:
        Checksummed pool address
    """
    token0, token1 = sort_addresses(token_a, token_b)
    salt = Web3.keccak(encode(
        ["address", "address", "uint24"],
        [Web3.to_checksum_address(token0), Web3.to_checksum_address(token1), fee],
    ))
    preimage = (
        b"\xff"
        + bytes.fromhex(Web3.to_checksum_address(deployer)[2:])
        + salt
        + Web3.to_bytes(hexstr=init_code_hash)
    )
    return Web3.to_checksum_address(Web3.keccak(preimage)[12:])


def derive_pool_address(
    platform: str,
    chain_id: int,
    token_a: str,
    token_b: str,
    fee: int,
    registry: Optional[ChainRegistry] = None,
) -> str:
    """
    Pool address from registry constants

    Raises:
        ConfigurationError: Unknown chain or fee tier
        UnsupportedPlatform: Platform not deployed on chain
    """
    registry = registry or get_chain_registry()
    platform_config = registry.get_platform(platform, chain_id)
    registry.tick_spacing(platform, chain_id, fee)
    return compute_pool_address(
        platform_config.deployer,
        token_a,
        token_b,
        fee,
        platform_config.init_code_hash,
    )
