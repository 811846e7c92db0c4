from storycraft.cli.main import app

app()
