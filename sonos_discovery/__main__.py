#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import sys
import argparse
import json
import logging

from sonos_discovery.internal_types import *

from sonos_discovery import (
    __version__ as pkg_version,
    DiscoveryConfig,
    DiscoveryEngine,
    SsdpReplyInfo,
    DEFAULT_TIMEOUT,
    DEFAULT_MX,
    UNBOUNDED_DEVICE_COUNT,
  )

class CmdExitError(RuntimeError):
    exit_code: int

    def __init__(self, exit_code: int, msg: Optional[str]=None):
        if msg is None:
            msg = f"Command exited with return code {exit_code}"
        super().__init__(msg)
        self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
    pass

class NoExitArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        raise ArgparseExitError(status, message)

class CommandHandler:
    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv

    def cmd_bare(self) -> int:
        print("A command is required", file=sys.stderr)
        return 1

    def cmd_discover(self) -> int:
        timeout: float = self._args.timeout
        device_count: Optional[int] = self._args.count
        show_replies: bool = self._args.show_replies
        as_json: bool = self._args.json

        def reply_handler(info: SsdpReplyInfo) -> None:
            summary: JsonableDict = {
                "address": str(info.address),
                "src_addr": f"{info.src_addr[0]}:{info.src_addr[1]}",
                "monotonic_time": info.monotonic_time,
                "utc_time": info.utc_time.isoformat(),
            }
            if info.message is not None:
                summary["statement"] = info.message.statement_line
                summary["headers"] = dict(info.message.headers)
            print(json.dumps(summary, indent=2, sort_keys=True), file=sys.stderr)
            sys.stderr.flush()

        config = DiscoveryConfig(
            timeout=timeout,
            device_count=UNBOUNDED_DEVICE_COUNT if device_count is None else device_count,
            mx=self._args.mx,
            interface_addr=self._args.interface_addr,
            sonos_only=self._args.sonos_only,
          )
        engine = DiscoveryEngine(config, reply_handler=reply_handler if show_replies else None)
        addresses = sorted(engine.start())
        if as_json:
            print(json.dumps([str(addr) for addr in addresses], indent=2))
        else:
            for addr in addresses:
                print(addr)
        return 0

    def cmd_version(self) -> int:
        print(pkg_version)
        return 0

    def run(self) -> int:
        """Run the sonos-discovery command-line tool with provided arguments

        Args:
            argv (Optional[Sequence[str]], optional):
                A list of commandline arguments (NOT including the program as argv[0]!),
                or None to use sys.argv[1:]. Defaults to None.

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(prog="sonos-discovery", description="Discover Sonos speakers on the local network with SSDP.")


        # ======================= Main command

        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        parser.set_defaults(func=self.cmd_bare)

        subparsers = parser.add_subparsers(
                            title='Commands',
                            description='Valid commands',
                            help='Additional help available with "<command-name> -h"')


        # ======================= discover

        parser_discover = subparsers.add_parser('discover', description="Search for Sonos speakers and print their IP addresses")
        parser_discover.add_argument('-t', '--timeout', type=float, default=DEFAULT_TIMEOUT,
                            help=f'''The amount of time to wait for replies, in seconds. Default: {DEFAULT_TIMEOUT}''')
        parser_discover.add_argument('-n', '--count', type=int, default=None,
                            help='''Stop as soon as this many devices have replied. Default: no limit''')
        parser_discover.add_argument('--mx', type=int, default=DEFAULT_MX,
                            help=f'''The MX value to send in the search request, in seconds. Default: {DEFAULT_MX}''')
        parser_discover.add_argument('-i', '--interface', dest="interface_addr", default=None,
                            help='''The local IPv4 address of the interface to search on. Default: chosen by the OS''')
        parser_discover.add_argument('--sonos-only', dest="sonos_only", action='store_true', default=False,
                            help='Only accept replies whose headers identify a Sonos player. Default: accept any reply')
        parser_discover.add_argument('--show-replies', dest="show_replies", action='store_true', default=False,
                            help='Print a JSON summary of each reply to stderr as it arrives')
        parser_discover.add_argument('--json', action='store_true', default=False,
                            help='Print the addresses as a JSON list')
        parser_discover.set_defaults(func=self.cmd_discover)

        # ======================= version

        parser_version = subparsers.add_parser('version',
                                description='''Display version information.''')
        parser_version.set_defaults(func=self.cmd_version)

        # =========================================================

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            func: Callable[[], int] = args.func
            logging.debug(f"Running command {func.__name__}, tb = {traceback}")
            rc = func()
            logging.debug(f"Command {func.__name__} returned {rc}")
        except Exception as ex:
            if isinstance(ex, CmdExitError):
                rc = ex.exit_code
            else:
                rc = 1
            if rc != 0:
                if traceback:
                    raise
            print(f"sonos-discovery: error: {ex}", file=sys.stderr)
        except BaseException as ex:
            print(f"sonos-discovery: Unhandled exception: {ex}", file=sys.stderr)
            raise

        return rc

def run(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = CommandHandler(argv).run()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

def main() -> None:
    sys.exit(run())

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
    main()
