"""FYTE token ledger: buy with native currency, claim daily by NFT ownership."""
