"""Allow ``python -m ventas_clean``."""

from ventas_clean import cli

if __name__ == "__main__":
    cli.app()
