#!/usr/bin/env python3
"""
list_ips.py - List every IPv4 address configured on a Linux host

Addresses are gathered from the kernel socket tables, `ip`, `ifconfig` and the
iptables NAT table, merged, classified and optionally checked against lists of
addresses that must be present or absent (for use as a monitoring check).
"""

import argparse
import ipaddress
import logging
import re
import subprocess
import sys
from collections import Counter
from enum import Enum

# Sources
PROC_NET_TCP = '/proc/net/tcp'
PROC_NET_UDP = '/proc/net/udp'
IPROUTE2_CMD = ['ip', '-o', '-4', 'addr', 'show']
IFCONFIG_CMD = ['ifconfig', '-a']
NAT_TABLE_CMD = ['iptables', '-t', 'nat', '-L', '-n']

# Never reported, whichever source produced it
UNSPECIFIED_ADDRESS = '0.0.0.0'

IPV4_PATTERN = r'\d{1,3}(?:\.\d{1,3}){3}'

# `ip -o -4 addr show`: "2: eth0    inet 192.168.1.5/24 brd ..."
IPROUTE2_LINE = re.compile(r'^\s*(?:\d+:\s+)?\S+\s+inet\s+(' + IPV4_PATTERN + r')/\d+')

# Classic net-tools "inet addr:10.0.0.1", newer net-tools "inet 10.0.0.1  netmask"
IFCONFIG_LINE = re.compile(r'\binet (?:addr:)?(' + IPV4_PATTERN + r')\b')

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger('list_ips')
# Source failures are only reported with --debug
logger.setLevel(logging.WARNING)

class Classification(str, Enum):
    PRIVATE = 'private'
    ZEROCONF = 'zeroconf'
    MULTICAST = 'multicast'
    PUBLIC = 'public'

    def __str__(self):
        return self.value

# Checked in order, first match wins. 203.0.113.0/24 keeps its historical
# "multicast" label because existing checks key on it.
CLASSIFICATION_RULES = [
    (ipaddress.IPv4Network('10.0.0.0/8'), Classification.PRIVATE),
    (ipaddress.IPv4Network('172.16.0.0/12'), Classification.PRIVATE),
    (ipaddress.IPv4Network('192.168.0.0/16'), Classification.PRIVATE),
    (ipaddress.IPv4Network('127.0.0.0/8'), Classification.PRIVATE),
    (ipaddress.IPv4Network('169.254.0.0/16'), Classification.ZEROCONF),
    (ipaddress.IPv4Network('192.0.2.0/24'), Classification.PRIVATE),
    (ipaddress.IPv4Network('203.0.113.0/24'), Classification.MULTICAST),
    (ipaddress.IPv4Network('224.0.0.0/3'), Classification.MULTICAST),
]

class SourceUnavailable(Exception):
    """A collector could not read its source (missing file, failed command)."""

def is_ipv4(text):
    """Check if text is a single dotted-quad IPv4 address"""
    try:
        ipaddress.IPv4Address(text)
    except ValueError:
        return False
    return True

def run_command(argv):
    """
    Run a local command and return (returncode, stdout).
    There is no timeout: a hanging command hangs the whole run.
    """
    result = subprocess.run(argv, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL, text=True)
    return result.returncode, result.stdout

def read_file(path):
    """Read a (pseudo-)file as text"""
    with open(path, 'r') as f:
        return f.read()

def command_output(runner, argv):
    """Run argv through runner, raising SourceUnavailable on a non-zero exit"""
    returncode, output = runner(argv)
    if returncode != 0:
        raise SourceUnavailable(f"{' '.join(argv)} exited with status {returncode}")
    return output

def merge(addresses, found):
    """Return a new AddressSet with the found addresses added to the accumulator"""
    merged = Counter(addresses)
    merged.update(found)
    return merged

def best_effort(name, addresses, collect):
    """
    Run one collector inside the failure boundary.

    collect() returns the addresses found by the source. Any I/O or parse
    failure leaves the accumulator unchanged, so a single broken source never
    aborts the run.
    """
    try:
        found = collect()
    except (SourceUnavailable, OSError, subprocess.SubprocessError, UnicodeDecodeError) as e:
        logger.debug(f"Source {name} unavailable: {e}")
        return addresses
    logger.debug(f"Source {name} found {len(found)} address(es)")
    return merge(addresses, found)

def decode_table_addr(hex_addr):
    """
    Decode the local address of a /proc/net/{tcp,udp} entry.

    The kernel prints the address as 8 hex digits in host (little-endian)
    byte order, so the first octet in the file is the last one of the
    address: 0100007F -> 127.0.0.1
    """
    if not re.fullmatch(r'[0-9A-Fa-f]{8}', hex_addr):
        raise ValueError(f"Not a socket table address: {hex_addr!r}")
    octets = [int(hex_addr[i:i + 2], 16) for i in range(0, 8, 2)]
    return '.'.join(str(octet) for octet in reversed(octets))

def parse_socket_table(text):
    """Extract local addresses from the contents of /proc/net/tcp or /proc/net/udp"""
    found = []
    # First line is the column header
    for line in text.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 2 or ':' not in parts[1]:
            continue
        try:
            found.append(decode_table_addr(parts[1].split(':')[0]))
        except ValueError:
            logger.debug(f"Skipping malformed socket table line: {line!r}")
    return found

def parse_iproute2(text):
    """Extract addresses from `ip -o -4 addr show` output"""
    found = []
    for line in text.splitlines():
        match = IPROUTE2_LINE.search(line)
        if match and is_ipv4(match.group(1)):
            found.append(match.group(1))
    return found

def parse_ifconfig(text):
    """Extract addresses from `ifconfig -a` output"""
    found = []
    for line in text.splitlines():
        match = IFCONFIG_LINE.search(line)
        if match and is_ipv4(match.group(1)):
            found.append(match.group(1))
    return found

def _nat_address(field):
    # A host match is printed either bare or as a /32 network
    if field.endswith('/32'):
        field = field[:-3]
    return field if is_ipv4(field) else None

def parse_nat_table(text):
    """
    Extract addresses from `iptables -t nat -L -n` output.

    DNAT rules contribute their destination (5th column), SNAT rules their
    source (4th column). Network matches such as 0.0.0.0/0 are ignored.
    """
    found = []
    for line in text.splitlines():
        parts = line.split()
        if line.startswith('DNAT'):
            field = parts[4] if len(parts) > 4 else None
        elif 'SNAT' in line:
            field = parts[3] if len(parts) > 3 else None
        else:
            continue
        address = _nat_address(field) if field else None
        if address:
            found.append(address)
    return found

def collect_socket_table(addresses, path, read_file=read_file):
    """Add the local addresses of a kernel socket table"""
    return best_effort(path, addresses, lambda: parse_socket_table(read_file(path)))

def collect_iproute2(addresses, runner=run_command):
    """Add the addresses reported by iproute2"""
    return best_effort('iproute2', addresses,
                       lambda: parse_iproute2(command_output(runner, IPROUTE2_CMD)))

def collect_ifconfig(addresses, runner=run_command):
    """Add the addresses reported by ifconfig"""
    return best_effort('ifconfig', addresses,
                       lambda: parse_ifconfig(command_output(runner, IFCONFIG_CMD)))

def collect_nat(addresses, runner=run_command):
    """Add the DNAT destinations and SNAT sources of the iptables NAT table"""
    return best_effort('nat', addresses,
                       lambda: parse_nat_table(command_output(runner, NAT_TABLE_CMD)))

def all_sources_disabled(options):
    return (options.notcp and options.noudp and options.noiproute2
            and options.noifconfig and options.nonat)

def gather_addresses(options, runner=run_command, read_file=read_file):
    """
    Run every enabled collector in turn and return the aggregate AddressSet.
    The unspecified address 0.0.0.0 is never part of the result.
    """
    addresses = Counter()
    if not options.notcp:
        addresses = collect_socket_table(addresses, PROC_NET_TCP, read_file)
    if not options.noudp:
        addresses = collect_socket_table(addresses, PROC_NET_UDP, read_file)
    if not options.noiproute2:
        addresses = collect_iproute2(addresses, runner)
    if not options.noifconfig:
        addresses = collect_ifconfig(addresses, runner)
    if not options.nonat:
        addresses = collect_nat(addresses, runner)

    addresses.pop(UNSPECIFIED_ADDRESS, None)
    return addresses

def classify(address):
    """Classify a dotted-quad address"""
    ip = ipaddress.IPv4Address(address)
    for network, classification in CLASSIFICATION_RULES:
        if ip in network:
            return classification
    return Classification.PUBLIC

def count_classes(addresses):
    """Count addresses per classification label, sorted by label"""
    counts = Counter(classify(address).value for address in addresses)
    return dict(sorted(counts.items()))

def validate(addresses, present=(), absent=()):
    """
    Check expectations against the aggregate.
    Returns (missing, mistakenly_present), both sorted and deduplicated.
    """
    missing = sorted(set(present) - set(addresses))
    mistakenly_present = sorted(set(absent) & set(addresses))
    return missing, mistakenly_present

def format_compact(addresses, missing, mistakenly_present):
    """
    Format the one-line monitoring output.
    Returns (line, exit_code).
    """
    address_list = ','.join(sorted(addresses))

    if missing or mistakenly_present:
        parts = []
        if missing:
            parts.append(f"Missing: {';'.join(missing)}")
        if mistakenly_present:
            parts.append(f"Present: {';'.join(mistakenly_present)}")
        if address_list:
            parts.append(address_list)
        return ' | '.join(parts), 1

    counts = ';'.join(f"{label}:{count}" for label, count in count_classes(addresses).items())
    return f"IP address count: {counts}|{address_list}", 0

def format_long(addresses, missing, mistakenly_present):
    """Format the verbose report"""
    lines = ["IP address types:"]
    counts = count_classes(addresses)
    if counts:
        lines.extend(f"  {label}: {count}" for label, count in counts.items())
    else:
        lines.append("  None")

    lines.append("")
    lines.append("IP addresses:")
    if addresses:
        lines.extend(f"  {address:<15}  {classify(address)}" for address in sorted(addresses))
    else:
        lines.append("  None")

    lines.append("")
    lines.append("Missing addresses:")
    lines.extend(f"  {address}" for address in missing or ['None'])

    lines.append("")
    lines.append("Mistakenly present addresses:")
    lines.extend(f"  {address}" for address in mistakenly_present or ['None'])

    return '\n'.join(lines)

def ipv4_argument(value):
    """argparse type for --present/--absent"""
    if not is_ipv4(value):
        raise argparse.ArgumentTypeError(f"invalid IPv4 address: {value!r}")
    return str(ipaddress.IPv4Address(value))

def build_parser():
    parser = argparse.ArgumentParser(
        description='List the IPv4 addresses configured on this host')
    parser.add_argument('--notcp', action='store_true',
                        help=f'Do not read {PROC_NET_TCP}')
    parser.add_argument('--noudp', action='store_true',
                        help=f'Do not read {PROC_NET_UDP}')
    parser.add_argument('--noiproute2', action='store_true',
                        help=f"Do not run '{' '.join(IPROUTE2_CMD)}'")
    parser.add_argument('--noifconfig', action='store_true',
                        help=f"Do not run '{' '.join(IFCONFIG_CMD)}'")
    parser.add_argument('--nonat', action='store_true',
                        help=f"Do not run '{' '.join(NAT_TABLE_CMD)}'")
    parser.add_argument('--present', action='append', default=[], metavar='ADDR',
                        type=ipv4_argument,
                        help='Address that must be configured (repeatable)')
    parser.add_argument('--absent', action='append', default=[], metavar='ADDR',
                        type=ipv4_argument,
                        help='Address that must not be configured (repeatable)')
    parser.add_argument('--long', action='store_true',
                        help='Print a verbose report instead of a single line')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging of source failures')
    return parser

def main(argv=None, runner=run_command, read_file=read_file):
    args = build_parser().parse_args(argv)

    # Enable debug logging if requested
    if args.debug:
        logger.setLevel(logging.DEBUG)

    if all_sources_disabled(args):
        print("All address sources are disabled, nothing to do.", file=sys.stderr)
        return 0

    addresses = gather_addresses(args, runner, read_file)
    missing, mistakenly_present = validate(addresses, args.present, args.absent)

    if args.long:
        print(format_long(addresses, missing, mistakenly_present))
        return 0

    line, exit_code = format_compact(addresses, missing, mistakenly_present)
    print(line)
    return exit_code

if __name__ == "__main__":
    sys.exit(main())
