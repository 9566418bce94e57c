"""
Discord Announcer - announcement bot with a web administration panel.

Operators log in to the panel, pick a channel and a message (optionally
from a saved template) and the bot posts it as an embed. A bounded
history, templates and usage stats are kept in a JSON document.

Example:
    Basic usage:

    ```python
    from discord_announcer.main import main

    if __name__ == "__main__":
        main()
    ```
"""

__version__ = "2.0.0"

# Lazy import keeps the package importable without discord.py side effects
def main():
    """Main entry point for the Discord Announcer."""
    from discord_announcer.main import main as _main
    return _main()

__all__ = ["main", "__version__"]
