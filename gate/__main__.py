"""
Gate CLI Entry Point
====================

Allows running gate as a module: python -m gate
"""

from gate.cli.main import main

if __name__ == "__main__":
    main()
