"""Allow ``python -m provisioner``."""

from provisioner.main import cli

if __name__ == "__main__":
    cli()
