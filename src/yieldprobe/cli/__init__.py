def main() -> None:
    """CLI entrypoint for the yieldprobe console script."""
    from yieldprobe.cli.app import app

    app()
