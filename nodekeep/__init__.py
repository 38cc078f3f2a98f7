"""nodekeep — side-by-side Node.js runtime installs."""

__version__ = "0.1.0"
