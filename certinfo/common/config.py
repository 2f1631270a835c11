"""Command line flags, with defaults taken from CERTINFO_* environment variables."""

import argparse
import os
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict


USAGE = "certinfo [flags] [<file>|<host:port> ...]"

TRUE_VALUES = ("1", "t", "T", "true", "TRUE", "True")
FALSE_VALUES = ("0", "f", "F", "false", "FALSE", "False")


def get_bool_env(name: str, default: bool = False) -> bool:
    """Boolean environment variable; unset or unparseable values give default."""
    value = os.getenv(name)
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    return default


@dataclass
class Config:
    expiry: bool = False
    no_duplicate: bool = False
    no_expired: bool = False
    sort_expiry: bool = False
    insecure: bool = False
    chains: bool = False
    extensions: bool = False
    signature: bool = False
    public_key: bool = False
    pem: bool = False
    pem_only: bool = False
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """Load flag defaults from environment variables."""
        return cls(
            expiry=get_bool_env("CERTINFO_EXPIRY"),
            no_duplicate=get_bool_env("CERTINFO_NO_DUPLICATE"),
            no_expired=get_bool_env("CERTINFO_NO_EXPIRED"),
            sort_expiry=get_bool_env("CERTINFO_SORT_EXPIRY"),
            insecure=get_bool_env("CERTINFO_INSECURE"),
            chains=get_bool_env("CERTINFO_CHAINS"),
            extensions=get_bool_env("CERTINFO_EXTENSIONS"),
            signature=get_bool_env("CERTINFO_SIGNATURE"),
            public_key=get_bool_env("CERTINFO_PUBLIC_KEY"),
            pem=get_bool_env("CERTINFO_PEM"),
            pem_only=get_bool_env("CERTINFO_PEM_ONLY"),
            verbose=get_bool_env("CERTINFO_VERBOSE"),
        )


class Flags(BaseModel):
    """Parsed command line."""
    model_config = ConfigDict(frozen=True)

    expiry: bool = False
    no_duplicate: bool = False
    no_expired: bool = False
    sort_expiry: bool = False
    subject_like: str = ""
    issuer_like: str = ""
    insecure: bool = False
    server_name: str = ""
    chains: bool = False
    extensions: bool = False
    signature: bool = False
    public_key: bool = False
    pem: bool = False
    pem_only: bool = False
    clipboard: bool = False
    verbose: bool = False
    version: bool = False
    args: List[str] = []


class FlagParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser(config: Optional[Config] = None) -> FlagParser:
    config = config or Config.from_env()
    parser = FlagParser(prog="certinfo", usage=USAGE)

    def flag(name, default, description):
        parser.add_argument(name, action=argparse.BooleanOptionalAction, default=default, help=description)

    flag("--expiry", config.expiry, "print expiry of certificates")
    flag("--no-duplicate", config.no_duplicate, "do not print duplicate certificates")
    flag("--no-expired", config.no_expired, "do not print expired certificates")
    flag("--sort-expiry", config.sort_expiry, "sort certificates by expiration date")
    parser.add_argument("--subject-like", default="", help="print certificates with subject field containing supplied string")
    parser.add_argument("--issuer-like", default="", help="print certificates with issuer field containing supplied string")
    flag("--insecure", config.insecure,
         "whether a client verifies the server's certificate chain and host name (only applicable for host)")
    parser.add_argument("--server-name", default="", help="verify the hostname on the returned certificates")
    flag("--chains", config.chains, "whether to print verified chains as well")
    flag("--extensions", config.extensions, "whether to print extensions")
    flag("--signature", config.signature, "whether to print signature")
    flag("--public-key", config.public_key, "whether to print public key")
    flag("--pem", config.pem, "whether to print pem as well")
    flag("--pem-only", config.pem_only, "whether to print only pem (useful for downloading certs from host)")
    parser.add_argument("--clipboard", action="store_true", help="read input from clipboard")
    flag("--verbose", config.verbose, "verbose logging")
    parser.add_argument("--version", action="store_true", help="certinfo version")
    parser.add_argument("args", nargs="*", metavar="<file>|<host:port>")
    return parser


def parse_flags(argv: Optional[Sequence[str]] = None, config: Optional[Config] = None) -> Flags:
    """
    Parse command line arguments.

    Args:
        argv: Arguments without the program name, sys.argv[1:] when None
        config: Flag defaults, read from the environment when None

    Returns:
        Frozen Flags

    Raises:
        SystemExit: With status 1 on usage errors
    """
    namespace = build_parser(config).parse_args(argv)
    return Flags(**vars(namespace))
