import base64, binascii, os, re
from dataclasses import dataclass, field
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from chatcommon.errors import (AuthenticationFailed, InvalidKeySize,
                               MalformedEnvelope, TransportDecodeError)

KEY_SIZE = 32     # AES-256
NONCE_SIZE = 12   # 96-bit GCM nonce
TAG_SIZE = 16     # 128-bit GCM tag

_B64URL = re.compile(r"[A-Za-z0-9_-]*")


@dataclass(frozen=True)
class SymmetricKey:
    ''' A 256-bit pre-shared key. The material never shows up in repr(). '''
    material: bytes = field(repr=False)

    def __post_init__(self):
        if not isinstance(self.material, (bytes, bytearray)):
            raise TypeError("key material must be bytes")
        if len(self.material) != KEY_SIZE:
            raise InvalidKeySize(
                f"Key size must be {KEY_SIZE} bytes for AES-{KEY_SIZE * 8}, got {len(self.material)}")
        object.__setattr__(self, "material", bytes(self.material))

    @classmethod
    def generate(cls) -> "SymmetricKey":
        '''This function generates a random 256-bit key'''
        return cls(AESGCM.generate_key(bit_length=KEY_SIZE * 8))

    @classmethod
    def from_text(cls, text: str) -> "SymmetricKey":
        '''
        This function builds a key from its Base64url text form (padding optional).
        Input:
            - text: Base64url string of 32 bytes
        Output: SymmetricKey
        Raises TransportDecodeError if the text is not Base64url and
        InvalidKeySize if it does not decode to exactly 32 bytes.
        '''
        return cls(decode_transport(text))

    def to_text(self) -> str:
        ''' Base64url text form of the key, suitable for --key '''
        return encode_transport(self.material)


KeyLike = Union[SymmetricKey, bytes, bytearray]


def _as_key(key: KeyLike) -> SymmetricKey:
    return key if isinstance(key, SymmetricKey) else SymmetricKey(key)


def aead_encrypt(key: KeyLike, plaintext: bytes) -> bytes:
    '''
    This function encrypts plaintext using AES-256-GCM.
    Input:
        - key: 32-byte key (SymmetricKey or raw bytes)
        - plaintext: data to encrypt in bytes
    Output: envelope bytes nonce(12) || ciphertext || tag(16)
    '''
    return AeadCodec(key).encrypt(plaintext)


def aead_decrypt(key: KeyLike, envelope: bytes) -> bytes:
    '''
    This function verifies and decrypts an envelope produced by aead_encrypt.
    Input:
        - key: 32-byte key (SymmetricKey or raw bytes)
        - envelope: nonce(12) || ciphertext || tag(16)
    Output: decrypted plaintext in bytes
    Raises MalformedEnvelope when the envelope is shorter than nonce + tag,
    AuthenticationFailed when the tag does not verify.
    '''
    return AeadCodec(key).decrypt(envelope)


def encode_transport(envelope: bytes) -> str:
    ''' This function encodes bytes to URL-safe Base64 text without padding '''
    return base64.urlsafe_b64encode(bytes(envelope)).rstrip(b"=").decode("ascii")


def decode_transport(text: Union[str, bytes]) -> bytes:
    '''
    This function decodes URL-safe Base64 text (with or without padding) to bytes.
    Surrounding whitespace is ignored so a trailing newline from the server is harmless.
    Input:
        - text: str or ASCII bytes
    Output: decoded bytes
    '''
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("ascii")
        except UnicodeDecodeError as exc:
            raise TransportDecodeError("transport text is not ASCII") from exc
    text = text.strip()
    body = text.rstrip("=")
    padded = len(text) != len(body)
    # b64decode would silently skip stray characters, so check the alphabet first
    if not _B64URL.fullmatch(body) or len(body) % 4 == 1:
        raise TransportDecodeError("transport text is not URL-safe Base64")
    # padding is optional, but when present it must complete the last quantum exactly
    if padded and (len(body) % 4 == 0 or len(text) % 4 != 0):
        raise TransportDecodeError("transport text has invalid padding")
    try:
        return base64.urlsafe_b64decode(body + "=" * (-len(body) % 4))
    except (binascii.Error, ValueError) as exc:
        raise TransportDecodeError(str(exc)) from exc


class AeadCodec:
    ''' AES-256-GCM codec bound to one pre-shared key '''
    def __init__(self, key: KeyLike):
        self._key = _as_key(key)
        self._aes = AESGCM(self._key.material)

    def __repr__(self):
        return "AeadCodec(<key hidden>)"

    def encrypt(self, plaintext: bytes) -> bytes:
        nonce = os.urandom(NONCE_SIZE)  # fresh random nonce for every message
        return nonce + self._aes.encrypt(nonce, bytes(plaintext), None)  # cryptography returns ct||tag

    def decrypt(self, envelope: bytes) -> bytes:
        envelope = bytes(envelope)
        if len(envelope) < NONCE_SIZE + TAG_SIZE:
            raise MalformedEnvelope(
                f"envelope is {len(envelope)} bytes, need at least {NONCE_SIZE + TAG_SIZE}")
        try:
            return self._aes.decrypt(envelope[:NONCE_SIZE], envelope[NONCE_SIZE:], None)
        except InvalidTag as exc:
            raise AuthenticationFailed("message authentication failed") from exc

    def seal(self, text: str) -> str:
        ''' UTF-8 text -> envelope -> transport text '''
        return encode_transport(self.encrypt(text.encode("utf-8")))

    def open(self, transport_text: Union[str, bytes]) -> str:
        ''' transport text -> envelope -> verified UTF-8 text '''
        return self.decrypt(decode_transport(transport_text)).decode("utf-8", errors="replace")
