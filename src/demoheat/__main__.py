"""
demoheat CLI Entry Point

Allows running the package as a module: python -m demoheat
"""


def main():
    """Main entry point for the CLI."""
    from demoheat.cli import app

    app()


if __name__ == "__main__":
    main()
