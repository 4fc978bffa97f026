"""IUPAC nucleotide symbols and their 4-bit mask encoding."""

from typing import Dict

# Each base owns one bit; ambiguity codes are unions of their bases
IUPAC_BITS: Dict[str, int] = {
    'A': 1,
    'C': 2,
    'G': 4,
    'T': 8,
    'M': 1 | 2,
    'R': 1 | 4,
    'W': 1 | 8,
    'S': 2 | 4,
    'Y': 2 | 8,
    'K': 4 | 8,
    'V': 1 | 2 | 4,
    'H': 1 | 2 | 8,
    'D': 1 | 4 | 8,
    'B': 2 | 4 | 8,
}

N_BITS = 1 | 2 | 4 | 8

BITS_IUPAC: Dict[int, str] = {bits: nuc for nuc, bits in IUPAC_BITS.items()}


def nuc_to_bits(nuc: str) -> int:
    """Encode a nucleotide symbol. Anything outside the IUPAC set becomes N."""
    return IUPAC_BITS.get(nuc.upper(), N_BITS)


def bits_to_nuc(bits: int) -> str:
    """Decode a 4-bit mask. The full mask and any unmapped mask decode to N."""
    return BITS_IUPAC.get(bits, 'N')


def codes_compatible(x: int, y: int, tolerate_ambiguous: bool = False) -> bool:
    """Two codes agree if equal, or if they share a base when ambiguity is tolerated."""
    return x == y or (tolerate_ambiguous and bool(x & y))
