#!/usr/bin/env python3
"""jsupdate - upgrade npm dependencies as far as the tests allow."""

from jsupdate.cli import main

if __name__ == "__main__":
    main()
