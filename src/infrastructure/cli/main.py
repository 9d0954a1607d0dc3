import typer

from .commands import (
    build as build_cmd,
    styles as styles_cmd,
    zotero as zotero_cmd,
)

app = typer.Typer(help="citepress CLI")

app.command(name="build")(build_cmd.build)
app.add_typer(styles_cmd.app, name="styles")
app.add_typer(zotero_cmd.app, name="zotero")


if __name__ == "__main__":
    app()
