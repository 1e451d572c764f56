from token_metadata_cli.cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
