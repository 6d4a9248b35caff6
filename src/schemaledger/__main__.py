"""Allow ``python -m schemaledger``."""

from schemaledger.cli.app import app

app()
