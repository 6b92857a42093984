"""On-chain account access: JSON-RPC transport and account decoders."""
