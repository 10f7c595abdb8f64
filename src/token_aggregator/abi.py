"""Contract ABIs shipped with the package."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

ABIS_DIR = Path(__file__).parent / "abis"


@lru_cache(maxsize=None)
def load_abi(name: str) -> list[dict]:
    """Load the "abi" field of ``abis/<name>.json``.

    Raises:
        FileNotFoundError: If no ABI with that name ships with the package.
        KeyError: If the JSON does not contain an "abi" field.
    """
    with (ABIS_DIR / f"{name}.json").open() as f:
        data = json.load(f)
    return data["abi"]


def load_erc20_abi() -> list[dict]:
    return load_abi("ERC20")


def load_oracle_abi() -> list[dict]:
    return load_abi("Oracle")
