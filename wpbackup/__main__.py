"""Allow running as `python -m wpbackup`."""
from wpbackup.cli import main

if __name__ == '__main__':
    main()
