"""Allow ``python -m devbox``, used to re-run the provisioner inside the container."""

from .cli.main import cli

if __name__ == "__main__":
    cli()
