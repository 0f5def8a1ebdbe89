"""chainplan: dependency-ordered provisioning of on-chain systems."""

__version__ = "0.1.0"
