"""Small console helpers shared by the symbolicator modules."""
import sys


def safe_print(msg: str):
    """Print message safely, handling unicode encoding issues on Windows consoles."""
    try:
        print(msg)
    except UnicodeEncodeError:
        encoding = sys.stdout.encoding or 'utf-8'
        print(msg.encode(encoding, errors='replace').decode(encoding, errors='replace'))


def format_address(value: int) -> str:
    """Hex form used on the atos command line, e.g. 0x102514000."""
    return f"0x{value:x}"
