"""Interactive AWS helper commands.

Each console script resolves what it needs from flags, environment or an fzf
prompt, checks the login, and then talks to AWS through boto3.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
