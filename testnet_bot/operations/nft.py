"""
NFT collection deployment, minting and burning.

Expects ``artifacts/NFTCollection.json`` with:

* ``constructor(string name, string symbol, uint256 maxSupply)``
* ``mint(address to, uint256 tokenId, string tokenURI)``
* ``ownerOf(uint256 tokenId) -> address``
* ``burn(uint256 tokenId)``
"""

import base64
import json
import math
import random
import secrets
from typing import List

from eth_utils import is_same_address

from ..config import NFTConfig
from .base import BaseOperation
from .contracts import DeployedContract

NFT_ARTIFACT = "NFTCollection"

NAME_PREFIXES = ["Cosmic", "Pixel", "Crypto", "Neon", "Mystic", "Cyber", "Ethereal", "Digital"]
NAME_SUFFIXES = ["Punks", "Apes", "Legends", "Dragons", "Warriors", "Spirits", "Creatures", "Relics"]
RARITIES = ["Common", "Uncommon", "Rare", "Epic", "Legendary", "Mythic"]
CATEGORIES = ["Art", "Collectible", "Game", "Meme", "PFP", "Utility"]


def generate_collection_name(rng: random.Random = random) -> str:
    return f"{rng.choice(NAME_PREFIXES)} {rng.choice(NAME_SUFFIXES)}"


def generate_collection_symbol(name: str) -> str:
    return "".join(word[0].upper() for word in name.split() if word)


def token_metadata_uri(token_id: int, collection_name: str, rng: random.Random = random) -> str:
    """Token metadata as a base64 ``data:`` URI."""
    metadata = {
        "name": f"{collection_name} #{token_id}",
        "description": f"A unique NFT from the {collection_name} collection.",
        "image": f"https://i.seadn.io/s/raw/files/{secrets.token_hex(16)}.png?auto=format&dpr=1&w=1920",
        "attributes": [
            {"trait_type": "Rarity", "value": rng.choice(RARITIES)},
            {"trait_type": "Category", "value": rng.choice(CATEGORIES)},
            {"trait_type": "Token ID", "value": str(token_id)},
            {"trait_type": "Generation", "value": "Genesis"},
        ],
    }
    encoded = base64.b64encode(json.dumps(metadata).encode("utf-8")).decode("ascii")
    return f"data:application/json;base64,{encoded}"


def burn_count(minted: int, burn_percentage: int) -> int:
    return math.ceil(minted * burn_percentage / 100)


class NFTOperation(BaseOperation):
    name = "nft"

    @property
    def config(self) -> NFTConfig:
        return self.run_config.operations.nft

    async def mint_tokens(self, collection: DeployedContract, collection_name: str, count: int) -> List[int]:
        minted: List[int] = []
        for token_id in range(count):
            self.logger.info(f"Minting token #{token_id}...")
            await self.add_delay(f"NFT minting (token #{token_id})")

            result = await self.contracts.call_method(
                collection,
                "mint",
                [self.submitter.address, token_id, token_metadata_uri(token_id, collection_name)],
            )
            if result.success:
                minted.append(token_id)
                self.logger.info(f"Token #{token_id} minted successfully")
            else:
                self.logger.error(f"Failed to mint token #{token_id}: {result.error}")
        return minted

    async def burn_token(self, collection: DeployedContract, token_id: int) -> bool:
        self.logger.info(f"Burning token #{token_id}...")
        await self.add_delay(f"NFT burning (token #{token_id})")

        owner = await self.contracts.call_view(collection, "ownerOf", [token_id])
        if not owner or not is_same_address(owner[0], self.submitter.address):
            self.logger.error(f"Token #{token_id} not owned by this wallet")
            return False

        result = await self.contracts.call_method(collection, "burn", [token_id])
        if not result.success:
            self.logger.error(f"Failed to burn token #{token_id}: {result.error}")
            return False

        self.logger.info(f"Token #{token_id} burned successfully")
        return True

    async def execute_operations(self) -> bool:
        cfg = self.config
        collection_name = generate_collection_name()
        symbol = generate_collection_symbol(collection_name)
        supply = cfg.supply.random_int()

        self.logger.info(f"NFT Collection: {collection_name} ({symbol})")
        self.logger.info(f"Max Supply: {supply}")

        await self.add_delay("NFT contract deployment")
        collection = await self.contracts.deploy(NFT_ARTIFACT, [collection_name, symbol, supply], "NFT collection")

        mint_count = min(cfg.mint_count.random_int(), supply)
        self.logger.info(f"Will mint {mint_count} NFTs...")
        minted = await self.mint_tokens(collection, collection_name, mint_count)

        to_burn = burn_count(len(minted), cfg.burn_percentage)
        burned = 0
        if to_burn > 0 and minted:
            self.logger.info(f"Burning {to_burn} NFTs ({cfg.burn_percentage}% of minted)...")
            for token_id in random.sample(minted, to_burn):
                if await self.burn_token(collection, token_id):
                    burned += 1
        else:
            self.logger.info(f"No tokens to burn (burn percentage: {cfg.burn_percentage}%)")

        self.logger.info(f"Contract address: {collection.address}")
        self.logger.info(f"Total minted: {len(minted)}, Burned: {burned}")
        self.logger.info(f"View collection: {self.address_url(collection.address)}")
        return True
