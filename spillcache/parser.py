"""
Command line parsing for the cache shell

A line is split into words; single or double quotes keep spaces inside one
argument. The first word names the command, matched case-insensitively.
"""
from typing import Dict, List, Tuple
import logging
import re

from spillcache.exceptions import ParserError

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r'"(?P<double>[^"]*)"|\'(?P<single>[^\']*)\'|(?P<bare>\S+)')

# bracketed arguments are optional
USAGES = {
    "set": "set key value [ttl]",
    "get": "get key",
    "del": "del key",
    "keys": "keys",
    "reset": "reset [key]",
    "size": "size",
    "stats": "stats",
}


def _arity(usage: str) -> Tuple[int, int]:
    params = usage.split()[1:]
    optional = sum(1 for p in params if p.startswith("["))
    return len(params) - optional, len(params)


class CommandParser:
    def __init__(self, usages: Dict[str, str] = USAGES):
        self._usages = dict(usages)
        self._arities = {cmd: _arity(usage) for cmd, usage in self._usages.items()}

    @property
    def commands(self) -> List[str]:
        return sorted(self._usages)

    def usage(self, cmd: str) -> str:
        return self._usages[cmd]

    @staticmethod
    def _tokenize(line: str) -> List[str]:
        tokens = []
        for match in _TOKEN_RE.finditer(line):
            kind = match.lastgroup
            tokens.append(match.group(kind))
        return tokens

    def parse(self, line: str) -> Tuple[str, List[str]]:
        """
        Return (command, args) for one input line, ParserError if it is not a known command
        with an acceptable number of arguments
        """
        tokens = self._tokenize(line)
        logger.debug(f"Tokens: {tokens}")
        if not tokens:
            raise ParserError("Empty command")

        cmd, args = tokens[0].lower(), tokens[1:]
        if cmd not in self._arities:
            raise ParserError(f"Unknown command: {cmd} (expected one of: {', '.join(self.commands)})")

        lo, hi = self._arities[cmd]
        if not lo <= len(args) <= hi:
            raise ParserError(f"Wrong number of arguments for {cmd}: usage is '{self.usage(cmd)}'")
        return cmd, args
