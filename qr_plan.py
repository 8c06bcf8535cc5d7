#!/usr/bin/env python3
"""
QR Code Plan Builder

Computes the static module layout of a QR code symbol for a given version,
error correction level and mask, before any payload bits are written into it.

The plan covers:
- Pixel model (role, black flag, invert flag and offset packed in one int)
- Function patterns: timing strips, finder boxes, alignment boxes
- Version information (BCH(18,6)) and the dark module
- Format information (BCH(15,5)) written twice around the finders
- The eight data mask functions

Encoding the payload, Reed-Solomon check bytes, the zig-zag placement of
data bits and mask penalty scoring are left to the caller.

Based on: ISO/IEC 18004 and https://www.thonky.com/qr-code-tutorial/
"""

import logging
from enum import IntEnum
from typing import Callable, Iterator, List, NamedTuple, Tuple, Union

logger = logging.getLogger(__name__)


#==============================================================================
# PIXEL MODEL
#==============================================================================

# Bit layout of a packed pixel: black, invert, 4 role bits, then the offset.
_ROLE_SHIFT = 2
_ROLE_MASK = 0b1111
_OFFSET_SHIFT = 6


class PixelRole(IntEnum):
    """The role a pixel plays in the symbol."""

    NONE = 0
    POSITION = 1   # position squares (large)
    ALIGNMENT = 2  # alignment squares (small)
    TIMING = 3     # timing strip between position squares
    FORMAT = 4     # format metadata
    DATA = 5       # data bit
    CHECK = 6      # error correction check bit
    VERSION = 7    # version metadata (versions 7 and up)
    DARK = 8       # always-black module beside the bottom-left finder

    def pixel(self) -> 'Pixel':
        """Return a light, non-inverted pixel with this role."""
        return Pixel(self << _ROLE_SHIFT)

    def __str__(self) -> str:
        return self.name.lower()


class Pixel(int):
    """
    A single pixel of a QR plan, packed into an int.

    Role, offset and flags live in disjoint bit ranges, so a pixel can be
    assembled with bitwise union:

        PixelRole.FORMAT.pixel() | Pixel.from_offset(3) | BLACK
    """

    __slots__ = ()

    @classmethod
    def from_offset(cls, offset: int) -> 'Pixel':
        return cls(offset << _OFFSET_SHIFT)

    @property
    def role(self) -> PixelRole:
        return PixelRole((self >> _ROLE_SHIFT) & _ROLE_MASK)

    @property
    def offset(self) -> int:
        return int(self) >> _OFFSET_SHIFT

    @property
    def black(self) -> bool:
        return bool(self & 1)

    @property
    def invert(self) -> bool:
        return bool(self & 2)

    @property
    def dark(self) -> bool:
        """
        Final color of the pixel.

        Data and check pixels are XORed with the mask. For format pixels the
        invert flag only records which bits the format mask flipped, the
        black flag already holds the drawn value.
        """
        if self.role in (PixelRole.DATA, PixelRole.CHECK):
            return self.black != self.invert
        return self.black

    def __or__(self, other: int) -> 'Pixel':
        return Pixel(int(self) | int(other))

    __ror__ = __or__

    def __xor__(self, other: int) -> 'Pixel':
        return Pixel(int(self) ^ int(other))

    __rxor__ = __xor__

    def __str__(self) -> str:
        s = str(self.role)
        if self.black:
            s += "+black"
        if self.invert:
            s += "+invert"
        return s + "+" + str(self.offset)

    def __repr__(self) -> str:
        return f"Pixel({self})"


BLACK = Pixel(1)
INVERT = Pixel(2)


#==============================================================================
# LEVELS, MASKS AND MODES
#==============================================================================

class Level(IntEnum):
    """
    Error correction level, from least to most tolerant of errors.

    The format information encodes a level as ``level ^ 1``:
    L=01, M=00, Q=11, H=10.
    """

    L = 0
    M = 1
    Q = 2
    H = 3

    def __str__(self) -> str:
        return self.name


class Mask(IntEnum):
    """Data mask pattern identifier (see MASK_PATTERNS)."""

    MASK_0 = 0
    MASK_1 = 1
    MASK_2 = 2
    MASK_3 = 3
    MASK_4 = 4
    MASK_5 = 5
    MASK_6 = 6
    MASK_7 = 7

    def __str__(self) -> str:
        return str(self.value)


class Mode(IntEnum):
    """
    Payload encoding mode. The value is the 4-bit mode indicator.

    Not used by the plan itself; kept for the data encoder.
    """

    NUMERIC = 0b0001
    ALPHANUMERIC = 0b0010
    EIGHT_BIT = 0b0100

    def __str__(self) -> str:
        return _MODE_NAMES[self]


_MODE_NAMES = {
    Mode.NUMERIC: "numeric",
    Mode.ALPHANUMERIC: "alpha",
    Mode.EIGHT_BIT: "8bit",
}


#==============================================================================
# ERRORS
#==============================================================================

MIN_VERSION = 1
MAX_VERSION = 40


class InvalidVersionError(ValueError):
    """Raised when a plan is requested for a version outside 1-40."""

    def __init__(self, version):
        super().__init__(
            f"invalid QR version {version!r} "
            f"(expected {MIN_VERSION}-{MAX_VERSION})"
        )
        self.version = version


#==============================================================================
# BCH CODES FOR FORMAT AND VERSION INFORMATION
#==============================================================================

# x^10 + x^8 + x^5 + x^4 + x^2 + x + 1
FORMAT_GENERATOR = 0x537

# Keeps the format area from being all light.
FORMAT_MASK = 0x5412

# x^12 + x^11 + x^10 + x^9 + x^8 + x^5 + x^2 + 1
VERSION_GENERATOR = 0x1F25


def bch_remainder(value: int, generator: int = FORMAT_GENERATOR) -> int:
    """
    Remainder of ``value`` divided by ``generator``, both read as
    polynomials over GF(2).

    A valid codeword leaves a remainder of zero.
    """
    degree = generator.bit_length() - 1
    remainder = value
    for i in range(value.bit_length() - 1, degree - 1, -1):
        if remainder & (1 << i):
            remainder ^= generator << (i - degree)
    return remainder


def format_codeword(level: Level, mask: Mask) -> int:
    """
    Build the 15-bit format codeword (before the FORMAT_MASK XOR).

    Bits 14-13 hold the level, bits 12-10 the mask and bits 9-0 the
    BCH(15,5) remainder.
    """
    info = (int(level) ^ 1) << 13
    info |= int(mask) << 10
    return info | bch_remainder(info, FORMAT_GENERATOR)


def version_codeword(version: int) -> int:
    """Build the 18-bit version codeword: 6 version bits + 12 BCH bits."""
    info = version << 12
    return info | bch_remainder(info, VERSION_GENERATOR)


#==============================================================================
# VERSION TABLE
#==============================================================================

class VersionInfo(NamedTuple):
    """
    Alignment layout of one version.

    Along each axis, alignment boxes sit at 4, then ``apos``, then every
    ``astride`` after that (upper-left corners).
    """

    apos: int
    astride: int


VERSION_TABLE: Tuple[VersionInfo, ...] = (
    VersionInfo(0, 0),  # dummy version 0
    # 1-10
    VersionInfo(100, 100),
    VersionInfo(16, 100),
    VersionInfo(20, 100),
    VersionInfo(24, 100),
    VersionInfo(28, 100),
    VersionInfo(32, 100),
    VersionInfo(20, 16),
    VersionInfo(22, 18),
    VersionInfo(24, 20),
    VersionInfo(26, 22),
    # 11-20
    VersionInfo(28, 24),
    VersionInfo(30, 26),
    VersionInfo(32, 28),
    VersionInfo(24, 20),
    VersionInfo(24, 22),
    VersionInfo(24, 24),
    VersionInfo(28, 24),
    VersionInfo(28, 26),
    VersionInfo(28, 28),
    VersionInfo(32, 28),
    # 21-30
    VersionInfo(26, 22),
    VersionInfo(24, 24),
    VersionInfo(28, 24),
    VersionInfo(26, 26),
    VersionInfo(30, 26),
    VersionInfo(28, 28),
    VersionInfo(32, 28),
    VersionInfo(24, 24),
    VersionInfo(28, 24),
    VersionInfo(24, 26),
    # 31-40
    VersionInfo(28, 26),
    VersionInfo(32, 26),
    VersionInfo(28, 28),
    VersionInfo(32, 28),
    VersionInfo(28, 24),
    VersionInfo(22, 26),
    VersionInfo(26, 26),
    VersionInfo(30, 26),
    VersionInfo(24, 28),
    VersionInfo(28, 28),
)


def symbol_size(version: int) -> int:
    """Number of modules on a side for the given version."""
    return 4 * version + 17


#==============================================================================
# PLAN
#==============================================================================

Grid = List[List[Pixel]]


class Plan:
    """
    How to construct a QR code with a specific version, level and mask.

    ``grid`` is row-major: ``grid[row][column]``.
    """

    def __init__(self, version: int, grid: Grid):
        self.version = version
        self.level = Level.L
        self.mask = Mask.MASK_0

        # Capacity counters, filled in by the data encoder.
        self.data_bytes = 0   # number of data bytes
        self.check_bytes = 0  # number of error correcting (checksum) bytes
        self.blocks = 0       # number of data blocks

        self.grid = grid

    @property
    def size(self) -> int:
        return len(self.grid)

    def cells(self, *roles: PixelRole) -> Iterator[Tuple[int, int, Pixel]]:
        """Yield ``(row, column, pixel)`` for every pixel with one of ``roles``."""
        for i, row in enumerate(self.grid):
            for j, pix in enumerate(row):
                if pix.role in roles:
                    yield i, j, pix

    def to_string(self, border: int = 4) -> str:
        """Render the plan as text with a quiet zone border."""
        blank = "  " * (self.size + 2 * border)
        lines = [blank] * border
        for row in self.grid:
            line = "  " * border
            line += "".join("██" if pix.dark else "  " for pix in row)
            line += "  " * border
            lines.append(line)
        lines.extend([blank] * border)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"Plan(version={self.version}, level={self.level!s}, "
            f"mask={self.mask!s}, size={self.size})"
        )


def build_plan(version: int,
               level: Union[Level, int, str] = Level.M,
               mask: Union[Mask, int] = Mask.MASK_0) -> Plan:
    """
    Return a Plan for a QR code with the given version, level and mask.

    Args:
        version: QR version (1-40)
        level: Level member, its int value, or its letter
        mask: Mask member or its int value (0-7)

    Raises:
        InvalidVersionError: version is outside 1-40
        ValueError: level or mask is not a known value
    """
    if isinstance(level, str):
        try:
            level = Level[level.upper()]
        except KeyError:
            raise ValueError(f"invalid error correction level: {level!r}") from None
    level = Level(level)
    mask = Mask(mask)

    plan = _version_plan(version)
    _format_plan(level, mask, plan)
    _level_plan(level, plan)
    _mask_plan(mask, plan)

    logger.debug("Built plan: version %d, level %s, mask %s, %dx%d",
                 version, level, mask, plan.size, plan.size)
    return plan


#==============================================================================
# GEOMETRY
#==============================================================================

TIMING_INDEX = 6  # timing is in row/column 6 (counting from 0)


def _version_plan(version: int) -> Plan:
    """Create a Plan holding the function patterns of ``version``."""
    if (isinstance(version, bool) or not isinstance(version, int)
            or not MIN_VERSION <= version <= MAX_VERSION):
        raise InvalidVersionError(version)

    size = symbol_size(version)
    none = PixelRole.NONE.pixel()
    grid = [[none] * size for _ in range(size)]

    # Timing markers (overwritten by boxes).
    for i in range(size):
        pix = PixelRole.TIMING.pixel()
        if i % 2 == 0:
            pix |= BLACK
        grid[i][TIMING_INDEX] = pix
        grid[TIMING_INDEX][i] = pix

    _place_position_box(grid, 0, 0)
    _place_position_box(grid, size - 7, 0)
    _place_position_box(grid, 0, size - 7)

    info = VERSION_TABLE[version]
    positions = list(_alignment_positions(size, info))
    for x in positions:
        for y in positions:
            if _overlaps_position_box(x, y, size):
                continue
            _place_alignment_box(grid, x, y)

    if version >= 7:
        _place_version_info(grid, version)

    grid[size - 8][8] = PixelRole.DARK.pixel() | BLACK

    return Plan(version, grid)


def _alignment_positions(size: int, info: VersionInfo) -> Iterator[int]:
    """Upper-left coordinates of alignment boxes along one axis."""
    pos = 4
    while pos + 5 < size:
        yield pos
        pos = info.apos if pos == 4 else pos + info.astride


def _overlaps_position_box(x: int, y: int, size: int) -> bool:
    """Check if an alignment box at (x, y) would meet a finder or its border."""
    if x < 7 and y < 7:
        return True
    if x < 7 and y + 5 >= size - 7:
        return True
    if x + 5 >= size - 7 and y < 7:
        return True
    return False


def _place_position_box(grid: Grid, x: int, y: int):
    """Draw a position (large) box with its light border at upper left x, y."""
    pos = PixelRole.POSITION.pixel()
    size = len(grid)

    for dy in range(7):
        for dx in range(7):
            pix = pos
            if (dx == 0 or dx == 6 or dy == 0 or dy == 6 or
                    (2 <= dx <= 4 and 2 <= dy <= 4)):
                pix |= BLACK
            grid[y + dy][x + dx] = pix

    # Light border
    for dy in range(-1, 8):
        if 0 <= y + dy < size:
            if x > 0:
                grid[y + dy][x - 1] = pos
            if x + 7 < size:
                grid[y + dy][x + 7] = pos
    for dx in range(-1, 8):
        if 0 <= x + dx < size:
            if y > 0:
                grid[y - 1][x + dx] = pos
            if y + 7 < size:
                grid[y + 7][x + dx] = pos


def _place_alignment_box(grid: Grid, x: int, y: int):
    """Draw an alignment (small) box at upper left x, y."""
    align = PixelRole.ALIGNMENT.pixel()
    for dy in range(5):
        for dx in range(5):
            pix = align
            if dx == 0 or dx == 4 or dy == 0 or dy == 4 or (dx == 2 and dy == 2):
                pix |= BLACK
            grid[y + dy][x + dx] = pix


def _place_version_info(grid: Grid, version: int):
    """Write the version codeword into the two 6x3 blocks."""
    size = len(grid)
    codeword = version_codeword(version)
    for i in range(18):
        pix = PixelRole.VERSION.pixel() | Pixel.from_offset(i)
        if (codeword >> i) & 1:
            pix |= BLACK
        # top right, left of the finder
        grid[i // 3][size - 11 + i % 3] = pix
        # bottom left, above the finder
        grid[size - 11 + i % 3][i // 3] = pix


#==============================================================================
# FORMAT INFORMATION
#==============================================================================

def format_positions(size: int) -> List[Tuple[Tuple[int, int], Tuple[int, int]]]:
    """
    (row, column) of each format bit, indexed by bit number.

    Each entry pairs the copy beside the top-left finder with the copy split
    between the top-right and bottom-left finders.
    """
    positions = []
    for i in range(15):
        # top left, skipping the timing strips
        if i < 6:
            first = (i, 8)
        elif i < 8:
            first = (i + 1, 8)
        elif i < 9:
            first = (8, 7)
        else:
            first = (8, 14 - i)
        # top right, then bottom left
        if i < 8:
            second = (8, size - 1 - i)
        else:
            second = (size - 1 - (14 - i), 8)
        positions.append((first, second))
    return positions


def _format_plan(level: Level, mask: Mask, plan: Plan):
    """Add the format pixels."""
    codeword = format_codeword(level, mask)
    grid = plan.grid
    for i, (first, second) in enumerate(format_positions(plan.size)):
        pix = PixelRole.FORMAT.pixel() | Pixel.from_offset(i)
        if (codeword >> i) & 1:
            pix |= BLACK
        if (FORMAT_MASK >> i) & 1:
            pix ^= INVERT | BLACK
        grid[first[0]][first[1]] = pix
        grid[second[0]][second[1]] = pix


#==============================================================================
# ERROR CORRECTION LEVEL
#==============================================================================

def _level_plan(level: Level, plan: Plan):
    """
    Record the level and claim the remaining pixels for data.

    Without capacity tables the data/check split is not known here, so every
    free pixel starts out as DATA; the data encoder relabels check pixels.
    """
    plan.level = level
    data = PixelRole.DATA.pixel()
    for row in plan.grid:
        for x, pix in enumerate(row):
            if pix.role == PixelRole.NONE:
                row[x] = data


#==============================================================================
# DATA MASKING
#==============================================================================

# Indexed by mask id; called with (row, column).
MASK_PATTERNS: Tuple[Callable[[int, int], bool], ...] = (
    lambda i, j: (i + j) % 2 == 0,
    lambda i, j: i % 2 == 0,
    lambda i, j: j % 3 == 0,
    lambda i, j: (i + j) % 3 == 0,
    lambda i, j: (i // 2 + j // 3) % 2 == 0,
    lambda i, j: i * j % 2 + i * j % 3 == 0,
    lambda i, j: (i * j % 2 + i * j % 3) % 2 == 0,
    lambda i, j: (i * j % 3 + (i + j) % 2) % 2 == 0,
)


def _mask_plan(mask: Mask, plan: Plan):
    """Set the invert flag of data and check pixels selected by ``mask``."""
    func = MASK_PATTERNS[mask]
    plan.mask = mask
    for i, row in enumerate(plan.grid):
        for j, pix in enumerate(row):
            if pix.role in (PixelRole.DATA, PixelRole.CHECK) and func(i, j):
                row[j] = pix | INVERT


#==============================================================================
# DEMONSTRATION
#==============================================================================

def demo():
    """Print a few plans."""
    print("=" * 70)
    print("QR PLAN BUILDER - DEMONSTRATION")
    print("=" * 70)

    for version, level, mask in [(1, Level.M, Mask.MASK_0),
                                 (2, Level.L, Mask.MASK_3),
                                 (7, Level.H, Mask.MASK_5)]:
        plan = build_plan(version, level, mask)
        codeword = format_codeword(level, mask)
        print(f"\n{plan!r}")
        print(f"Format codeword: {codeword:015b} "
              f"(drawn {codeword ^ FORMAT_MASK:015b})")
        if version >= 7:
            print(f"Version codeword: {version_codeword(version):018b}")
        counts = {}
        for _, _, pix in plan.cells(*PixelRole):
            counts[str(pix.role)] = counts.get(str(pix.role), 0) + 1
        print("Pixels by role: " +
              ", ".join(f"{role}={n}" for role, n in sorted(counts.items())))
        print(plan.to_string(border=2))

    print("\n" + "=" * 70)
    print("DEMONSTRATION COMPLETE")
    print("=" * 70)


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    demo()
