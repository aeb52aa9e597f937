#!/usr/bin/env python3
import sys
import os
import logging

from heapquery.cli import main

if 'DEBUG' in os.environ:
    logging.basicConfig()
    logger = logging.getLogger('heapquery')
    logger.setLevel(logging.DEBUG)


if __name__ == '__main__':
    sys.exit(main(sys.argv[1:]))
