from mdhost.cli import main

if __name__ == "__main__":
    # Same options as the `mdhost` console script, e.g.
    #   python run_server.py --backend file --storage-dir data --template -
    main()
