"""Anonymous Ethos reviews: X login, reputation gating and on-chain submission."""
