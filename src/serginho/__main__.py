from serginho.cli import cli

cli()
