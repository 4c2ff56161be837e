"""Built-in interfaces for the contracts the command-line tools talk to.

Available schemas:
- Store contract (`ItemSet(bytes32 indexed key, bytes32 value)`): make_store_schema()
- ERC-20 token events and the calls used by the transfer tools: make_erc20_schema()

Schemas are composable with `InterfaceSchema.merge`.

Example
-------
>>> from ethlogs.decoding.registries import make_erc20_schema, make_store_schema
>>> schema = make_store_schema().merge(make_erc20_schema())
"""

from __future__ import annotations

import json

from .abi import load_schema
from .registry_builder import schema_from_signatures
from .specs import InterfaceSchema

# ABI of the demo key/value store contract.
STORE_ABI = json.dumps(
    [
        {
            "inputs": [{"internalType": "string", "name": "_version", "type": "string"}],
            "stateMutability": "nonpayable",
            "type": "constructor",
        },
        {
            "anonymous": False,
            "inputs": [
                {"indexed": True, "internalType": "bytes32", "name": "key", "type": "bytes32"},
                {"indexed": False, "internalType": "bytes32", "name": "value", "type": "bytes32"},
            ],
            "name": "ItemSet",
            "type": "event",
        },
        {
            "inputs": [{"internalType": "bytes32", "name": "", "type": "bytes32"}],
            "name": "items",
            "outputs": [{"internalType": "bytes32", "name": "", "type": "bytes32"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [
                {"internalType": "bytes32", "name": "key", "type": "bytes32"},
                {"internalType": "bytes32", "name": "value", "type": "bytes32"},
            ],
            "name": "setItem",
            "outputs": [],
            "stateMutability": "nonpayable",
            "type": "function",
        },
        {
            "inputs": [],
            "name": "version",
            "outputs": [{"internalType": "string", "name": "", "type": "string"}],
            "stateMutability": "view",
            "type": "function",
        },
    ]
)

ERC20_EVENTS = [
    "Transfer(address indexed from, address indexed to, uint256 value)",
    "Approval(address indexed owner, address indexed spender, uint256 value)",
]

ERC20_FUNCTIONS = [
    "transfer(address,uint256)",
    "approve(address,uint256)",
    "transferFrom(address,address,uint256)",
    "balanceOf(address)",
    "allowance(address,address)",
    "decimals()",
    "symbol()",
]


def make_store_schema() -> InterfaceSchema:
    """Return the schema of the key/value store contract."""
    return load_schema(STORE_ABI)


def make_erc20_schema() -> InterfaceSchema:
    """Return the schema for standard ERC-20 events and calls."""
    return schema_from_signatures(ERC20_EVENTS, ERC20_FUNCTIONS)
