#!/usr/bin/env python3
"""
Pitchside - Development Entry Point
Usage: python run.py
"""

from pitchside.main import main

if __name__ == '__main__':
    main()
