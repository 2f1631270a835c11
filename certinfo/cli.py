"""certinfo entry point: load locations, apply filters, print."""

import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import List, Optional, Sequence

from certinfo import location
from certinfo import printer
from certinfo.common.config import Flags, build_parser, parse_flags
from certinfo.location import CertificateLocation


logger = logging.getLogger(__name__)


def get_version() -> str:
    try:
        return version("certinfo")
    except PackageNotFoundError:
        return "dev"


def setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.ERROR
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


def load_locations(flags: Flags) -> List[CertificateLocation]:
    """Locations from arguments, then stdin and clipboard when requested."""
    locations = location.load_from_args(flags.args, flags.server_name, flags.insecure)
    if location.is_stdin():
        locations.append(location.load_certificate_from_stdin())
    if flags.clipboard:
        locations.append(location.load_certificate_from_clipboard())
    return locations


def apply_filters(locations: Sequence[CertificateLocation], flags: Flags) -> List[CertificateLocation]:
    locations = list(locations)
    if flags.no_expired:
        locations = location.remove_expired(locations)
    if flags.no_duplicate:
        locations = location.remove_duplicates(locations)
    if flags.subject_like:
        locations = location.subject_like(locations, flags.subject_like)
    if flags.issuer_like:
        locations = location.issuer_like(locations, flags.issuer_like)
    if flags.sort_expiry:
        locations = location.sort_by_expiry(locations)
    return locations


def main(argv: Optional[Sequence[str]] = None) -> int:
    flags = parse_flags(argv)
    setup_logging(flags.verbose)

    if flags.version:
        print(get_version())
        return 0

    locations = load_locations(flags)
    if not locations:
        # no stdin and no args
        build_parser().print_help()
        return 0

    locations = apply_filters(locations, flags)
    if flags.expiry:
        printer.print_expiry(locations)
    elif flags.pem_only:
        printer.print_pem(locations, flags.chains)
    else:
        printer.print_locations(
            locations,
            chains=flags.chains,
            pem=flags.pem,
            extensions=flags.extensions,
            public_key=flags.public_key,
            signature=flags.signature,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
