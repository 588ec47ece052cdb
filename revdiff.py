#!python3 -X utf8

from typing import Any
import sys
import os
import argparse
from pathlib import Path
import logging

##################################################################################################
# Main
##################################################################################################

type ArgParser = argparse.ArgumentParser

class Commands:
    def __init__(self, parser: ArgParser) -> None:
        self.root_parser = parser
        self.parsers = {}
        self.subparsers = {}

    class Command:
        def __init__(self, commands: 'Commands', name: str) -> None:
            path = name.split('/')
            parsers = commands.parsers
            subparsers = commands.subparsers

            def subcommand(i: int) -> str:
                if i == 0: return 'command'
                return ('sub' * i) + 'command'

            if '' not in parsers:
                parsers[''] = commands.root_parser

            if '' not in subparsers:
                subparsers[''] = commands.root_parser.add_subparsers(dest='command')

            for i in range(1, len(path) + 1):
                p = '/'.join(path[:i])
                p0 = '/'.join(path[:i-1])
                if p not in parsers:
                    parsers[p] = subparsers[p0].add_parser(path[i-1])
                if p not in subparsers and i != len(path):
                    subparsers[p] = parsers[p].add_subparsers(dest=subcommand(i))

            self.parser = parsers[name]

        def __enter__(self) -> ArgParser:
            return self.parser

        def __exit__(self, exc_type: Any, exc_value: Any, traceback: Any) -> None:
            pass

    def __call__(self, name: str) -> Any:
        return Commands.Command(self, name)


def add_target_arguments(cmd: ArgParser) -> None:
    target = cmd.add_mutually_exclusive_group()
    target.add_argument('--branch', type=str, nargs='?', const='',
                        help='Compare against this branch (default_branch from the config if no name is given).')
    target.add_argument('--working', action='store_true', help='Compare against the working tree.')
    cmd.add_argument('--range', action='store_true', dest='span',
                     help='Select every revision between the first and last one given.')


async def main() -> int:
    if sys.platform.lower() == "win32":
        os.system('color')
        os.system('chcp 65001 > nul')
        sys.stdout.reconfigure(encoding='utf-8') # type: ignore
        sys.stderr.reconfigure(encoding='utf-8') # type: ignore

    parser = argparse.ArgumentParser(description='Per-file changes of git revisions.')
    parser.add_argument('-C', dest='directory', type=str, default=None, help='Run as if started in this directory.')
    commands = Commands(parser)

    with commands('config/check') as cmd:
        pass

    with commands('log') as cmd:
        cmd.add_argument('branch', type=str, nargs='?')
        cmd.add_argument('--not', dest='exclude', type=str, help='Hide revisions reachable from this branch.')
        cmd.add_argument('-n', dest='limit', type=int, default=None)

    with commands('changes') as cmd:
        cmd.add_argument('revisions', type=str, nargs='+')
        cmd.add_argument('--each', action='store_true', help='List each revision separately.')
        add_target_arguments(cmd)

    with commands('diff') as cmd:
        cmd.add_argument('path', type=str, nargs=1)
        cmd.add_argument('revisions', type=str, nargs='+')
        add_target_arguments(cmd)

    with commands('status') as cmd:
        pass

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        return 0

    from revdiff.config import ConfigError, load_config
    from revdiff.backend import BackendInvocationError, GitBackend
    from revdiff.messages import error

    try:
        config = load_config(Path(args.directory) if args.directory else None)
    except ConfigError as e:
        logging.basicConfig(level=logging.INFO, format='%(message)s')
        error(str(e))
        return 2

    logging.basicConfig(level=config.log_level, format='%(message)s')

    if getattr(args, 'branch', None) == '':
        args.branch = config.default_branch

    if args.command == 'config':
        match args.subcommand:
            case 'check':
                from revdiff.tasks.check_config import check_config
                check_config(config)
                return 0
            case _:
                raise ValueError(f"Unknown subcommand: {args.subcommand}")

    try:
        backend = GitBackend(config.repo_path, config)
    except BackendInvocationError as e:
        error(str(e))
        return 2

    with backend:
        try:
            match args.command:
                case 'log':
                    from revdiff.tasks.log import log
                    await log(backend, args.branch, args.exclude, args.limit or config.revision_limit)

                case 'changes':
                    from revdiff.tasks.changes import changes
                    ok = await changes(backend, args.revisions,
                                       branch=args.branch, working=args.working,
                                       span=args.span, each=args.each)
                    return 0 if ok else 1

                case 'diff':
                    from revdiff.tasks.changes import changes
                    ok = await changes(backend, args.revisions, path=args.path[0],
                                       branch=args.branch, working=args.working, span=args.span)
                    return 0 if ok else 1

                case 'status':
                    from revdiff.tasks.status import status
                    await status(backend)

                case _:
                    raise ValueError(f"Unknown command: {args.command}")
        except BackendInvocationError as e:
            error(f"{e.command} failed", e.reason)
            return 1
    return 0

if __name__ == '__main__':
    import asyncio
    sys.exit(asyncio.run(main()))
