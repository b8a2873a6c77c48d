from __future__ import annotations

import hashlib
from dataclasses import dataclass
from io import BytesIO

import imagehash
from PIL import Image, UnidentifiedImageError

HASH_SIZE = 8  # 8x8 grid -> 64-bit fingerprints


@dataclass(frozen=True)
class HashSet:
    sha256: str
    a_hash: str | None = None
    d_hash: str | None = None
    p_hash: str | None = None
    decode_error: str | None = None

    @property
    def perceptual(self) -> dict[str, str]:
        hashes = {"phash": self.p_hash, "ahash": self.a_hash, "dhash": self.d_hash}
        return {k: v for k, v in hashes.items() if v}


class HashService:
    """Content fingerprints. All functions are pure over their input.

    Perceptual hashes are computed on the grayscale image:
    - aHash: 8x8, bit set where the cell is brighter than the mean
    - dHash: 9x8, bit set where a pixel is brighter than its left neighbour
    - pHash: 32x32, 2D DCT, top-left 8x8 block thresholded on its median
    Bits are packed row-major into 16 hex chars.
    """

    @staticmethod
    def sha256(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    @staticmethod
    def decode(data: bytes) -> Image.Image:
        img = Image.open(BytesIO(data))
        img.load()
        if img.mode != "RGB":
            img = img.convert("RGB")
        return img

    @staticmethod
    def average_hash(img: Image.Image) -> str:
        return str(imagehash.average_hash(img, hash_size=HASH_SIZE))

    @staticmethod
    def difference_hash(img: Image.Image) -> str:
        return str(imagehash.dhash(img, hash_size=HASH_SIZE))

    @staticmethod
    def perceptual_hash(img: Image.Image) -> str:
        return str(imagehash.phash(img, hash_size=HASH_SIZE))

    @classmethod
    def compute(cls, data: bytes) -> HashSet:
        """Hash raw bytes; perceptual hashes are omitted when decoding fails."""
        digest = cls.sha256(data)
        try:
            img = cls.decode(data)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            return HashSet(sha256=digest, decode_error=str(exc) or type(exc).__name__)
        return HashSet(
            sha256=digest,
            a_hash=cls.average_hash(img),
            d_hash=cls.difference_hash(img),
            p_hash=cls.perceptual_hash(img),
        )


def hamming_distance(hash1: str, hash2: str) -> int:
    """Count of differing bits between two equal-length hex fingerprints."""
    if len(hash1) != len(hash2):
        raise ValueError("Hashes must be of the same length to calculate Hamming distance.")
    try:
        return int(imagehash.hex_to_hash(hash1) - imagehash.hex_to_hash(hash2))
    except ValueError as exc:
        raise ValueError("Invalid hex string provided.") from exc
