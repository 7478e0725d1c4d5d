__version__ = "0.1.0"

__all__ = [
    "__version__",
    "cli",
    "collectors",
    "commands",
    "contracts",
    "core",
    "engine",
    "evidence",
    "reporting",
    "rules",
]
