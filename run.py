#!/usr/bin/env python3
"""Development runner: genbackup CLI with the development config"""
import os

from genbackup.cli import main

if __name__ == '__main__':
    # Use development config for local testing
    os.environ.setdefault('FLASK_ENV', 'development')

    main()
