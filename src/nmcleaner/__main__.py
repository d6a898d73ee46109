from nmcleaner.cli import app

app()
