from .cli import app

app(prog_name="ekyte-tools")
