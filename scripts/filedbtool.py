#!/usr/bin/env python3
'''
Inspect and generate file.db indexes.

    $ filedbtool.py dump file.db
    $ filedbtool.py gen -o file.db data0.db data1.db
    $ filedbtool.py gen -o file.db directory/

With more than one source the order matters: files defined in a later
source overwrite the ones defined in the earlier sources.
'''
import os
import sys
import logging

from filedb.commands import dump_file_db, generate_file_db
from filedb.exceptions import FileDBException


logging.basicConfig(level=logging.DEBUG if 'DEBUG' in os.environ else logging.INFO)
logger = logging.getLogger(__name__)


def usage(progname):
    print(f'''usage: {progname} dump <file.db>
       {progname} gen -o <output> <file.db...|directory>''')
    sys.exit(1)


def parse_gen_arguments(progname, args):
    output = None
    sources = []

    args = iter(args)
    for arg in args:
        if arg in ('-o', '--output'):
            output = next(args, None)
        elif arg.startswith('--output='):
            output = arg[len('--output='):]
        else:
            sources.append(arg)

    if not output or not sources:
        usage(progname)

    return output, sources


if __name__ == '__main__':
    if len(sys.argv) < 3:
        usage(sys.argv[0])

    command = sys.argv[1]

    try:
        if command == 'dump' and len(sys.argv) == 3:
            dump_file_db(sys.argv[2])
        elif command == 'gen':
            output, sources = parse_gen_arguments(sys.argv[0], sys.argv[2:])
            generate_file_db(sources, output)
        else:
            usage(sys.argv[0])
    except (FileDBException, OSError) as e:
        logger.error(f'{command} failed: {e}')
        sys.exit(2)
