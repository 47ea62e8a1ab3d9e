#!/usr/bin/env python3
"""
Entry point for running bacpacfix as a module with python3 -m bacpacfix
"""

from .cli import main

if __name__ == "__main__":
    main()
