"""Entry point: python -m something_bg"""

from something_bg.cli.main import main

if __name__ == "__main__":
    main()
