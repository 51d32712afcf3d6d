"""
ERC20 token deployment, mint and burn.

Expects ``artifacts/ERC20Token.json`` with:

* ``constructor(string name, string symbol, uint8 decimals)``
* ``mint(address to, uint256 amount)``
* ``burn(uint256 amount)``
"""

import random

from ..config import ERC20Config
from .base import BaseOperation
from .contracts import DeployedContract

TOKEN_ARTIFACT = "ERC20Token"

TOKEN_NAME_PREFIXES = [
    "Crypto", "Block", "Chain", "Meta", "Digi", "Quantum", "Hyper", "Nova",
    "Stellar", "Cipher", "Pixel", "Lunar", "Solar", "Atomic", "Zen",
]
TOKEN_NAME_SUFFIXES = [
    "Coin", "Token", "Cash", "Credit", "Dollar", "Gold", "Finance", "Swap",
    "Network", "Protocol", "Points", "Shares",
]


def generate_token_name(rng: random.Random = random) -> str:
    return f"{rng.choice(TOKEN_NAME_PREFIXES)} {rng.choice(TOKEN_NAME_SUFFIXES)}"


def generate_token_symbol(name: str) -> str:
    """Initials of the name, or the first 4 letters of its first word if that runs past 5."""
    words = name.split()
    symbol = "".join(word[0].upper() for word in words if word)
    if len(symbol) > 5:
        return words[0][:4].upper()
    return symbol


def to_base_units(amount: int, decimals: int) -> int:
    return int(amount) * 10**decimals


class ERC20Operation(BaseOperation):
    name = "erc20"

    @property
    def config(self) -> ERC20Config:
        return self.run_config.operations.erc20

    async def burn_tokens(
        self, token: DeployedContract, burn_amount: int, symbol: str, decimals: int
    ) -> bool:
        self.logger.info(
            f"Burning {burn_amount:,} tokens ({self.config.burn_percentage}% of minted)..."
        )
        await self.add_delay("token burning")

        result = await self.contracts.call_method(token, "burn", [to_base_units(burn_amount, decimals)])
        if not result.success:
            self.logger.error(f"Failed to burn tokens: {result.error}")
            return False

        self.logger.info(f"Burned {burn_amount:,} {symbol} tokens")
        return True

    async def execute_operations(self) -> bool:
        cfg = self.config
        token_name = generate_token_name()
        symbol = generate_token_symbol(token_name)
        decimals = cfg.decimals

        self.logger.info(f"Token: {token_name} ({symbol})")
        self.logger.info(f"Decimals: {decimals}")

        await self.add_delay("ERC20 contract deployment")
        token = await self.contracts.deploy(TOKEN_ARTIFACT, [token_name, symbol, decimals], "ERC20 token")

        mint_amount = cfg.mint_amount.random_int()
        self.logger.info(f"Will mint {mint_amount:,} tokens...")
        await self.add_delay("token minting")

        result = await self.contracts.call_method(
            token, "mint", [self.submitter.address, to_base_units(mint_amount, decimals)]
        )
        if result.success:
            self.logger.info(f"Minted {mint_amount:,} {symbol} tokens")

            burn_amount = mint_amount * cfg.burn_percentage // 100
            if burn_amount > 0:
                await self.burn_tokens(token, burn_amount, symbol, decimals)
            else:
                self.logger.info(f"No tokens to burn (burn percentage: {cfg.burn_percentage}%)")
        else:
            self.logger.error(f"Failed to mint tokens: {result.error}")

        self.logger.info("ERC20 token operations completed!")
        self.logger.info(f"Contract address: {token.address}")
        self.logger.info(f"View contract: {self.address_url(token.address)}")
        return True
