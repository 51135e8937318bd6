"""Client side: wallets, the ledger gateway and the auction application client"""
from sealbid.client.wallet import Wallet, WalletError
from sealbid.client.gateway import AuctionClient, Gateway

__all__ = ["Wallet", "WalletError", "Gateway", "AuctionClient"]
