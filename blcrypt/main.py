# BLCRYPT SAVE TRANSCODER ->

import os as _os_module


class InputSizeError(ValueError):
    """Raised when a container is not a whole number of cipher blocks."""


class PaddingError(ValueError):
    """Raised when PKCS7 padding on a decrypted container is malformed."""


class CompressionError(ValueError):
    """Raised when the inflated payload is corrupt or truncated."""


class ChecksumError(ValueError):
    """Raised in strict mode when the Adler-32/length footer does not match."""


class SerialDecodeError(ValueError):
    """Raised when an item serial cannot be mapped to bytes."""


class SerialEncodeError(ValueError):
    """Raised when an edited item cannot be written back to a serial."""


class blcrypt:
    import struct
    import typing
    import zlib
    import pathlib
    from cryptography.hazmat.primitives import padding
    from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

    @staticmethod
    def _env_int(name: str) -> "blcrypt.typing.Optional[int]":
        value = _os_module.getenv(name)
        if not value:
            return None
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            return None
        if parsed <= 0:
            return None
        return parsed

    ENGINE_VERSION = "1.2.0"
    MAX_INPUT_BYTES = 256 * 1024 * 1024
    _MAX_INPUT_BYTES_ENV = _env_int("BLCRYPT_MAX_INPUT_BYTES")
    if _MAX_INPUT_BYTES_ENV is not None:
        MAX_INPUT_BYTES = _MAX_INPUT_BYTES_ENV
    STRICT_FOOTER = _os_module.getenv("BLCRYPT_STRICT_FOOTER", "0") == "1"
    _SILENT_MODE: typing.ClassVar[bool] = False

    # Fixed by the game client; XOR-masked with the account id, obfuscation only.
    BASE_KEY = bytes([
        0x35, 0xEC, 0x33, 0x77, 0xF3, 0x5D, 0xB0, 0xEA,
        0xBE, 0x6B, 0x83, 0x11, 0x54, 0x03, 0xEB, 0xFB,
        0x27, 0x25, 0x64, 0x2E, 0xD5, 0x49, 0x06, 0x29,
        0x05, 0x78, 0xBD, 0x60, 0xBA, 0x4A, 0xA7, 0x87,
    ])
    BLOCK_SIZE = 16
    FOOTER_LEN = 8
    DEFLATE_LEVEL = 9

    SERIAL_MARKER = "@Ug"
    CHAR_SET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/=!$%&*()[]{}~`^_<>?#;"
    _CHAR_MAP: typing.ClassVar[dict[str, int]] = {ch: idx for idx, ch in enumerate(CHAR_SET)}

    @staticmethod
    def _warn(message: str) -> None:
        if not blcrypt._SILENT_MODE:
            print(f"⚠️  {message}")

    # ------------------------------------------------------------------
    # Key derivation and block cipher
    # ------------------------------------------------------------------

    @staticmethod
    def derive_key(steam_id: "blcrypt.typing.Union[str, int]") -> bytes:
        digits = "".join(ch for ch in str(steam_id) if ch in "0123456789")
        sid = int(digits) if digits else 0
        sid_bytes = (sid & 0xFFFFFFFFFFFFFFFF).to_bytes(8, "little")
        key = bytearray(blcrypt.BASE_KEY)
        for i, b in enumerate(sid_bytes):
            key[i] ^= b
        return bytes(key)

    @staticmethod
    def pad(data: bytes) -> bytes:
        padder = blcrypt.padding.PKCS7(blcrypt.BLOCK_SIZE * 8).padder()
        return padder.update(bytes(data)) + padder.finalize()

    @staticmethod
    def _try_unpad(data: bytes) -> "blcrypt.typing.Optional[bytes]":
        if not data or len(data) % blcrypt.BLOCK_SIZE:
            return None
        unpadder = blcrypt.padding.PKCS7(blcrypt.BLOCK_SIZE * 8).unpadder()
        try:
            return unpadder.update(bytes(data)) + unpadder.finalize()
        except ValueError:
            return None

    @staticmethod
    def unpad(data: bytes) -> bytes:
        body = blcrypt._try_unpad(data)
        if body is None:
            raise PaddingError("Invalid PKCS7 padding")
        return body

    @staticmethod
    def _ecb(key: bytes):
        return blcrypt.Cipher(blcrypt.algorithms.AES(key), blcrypt.modes.ECB())

    @staticmethod
    def encrypt_blocks(key: bytes, plaintext: bytes) -> bytes:
        if len(plaintext) % blcrypt.BLOCK_SIZE:
            raise InputSizeError(f"Plaintext size {len(plaintext)} not multiple of {blcrypt.BLOCK_SIZE}")
        encryptor = blcrypt._ecb(key).encryptor()
        return encryptor.update(bytes(plaintext)) + encryptor.finalize()

    @staticmethod
    def decrypt_blocks(key: bytes, ciphertext: bytes) -> bytes:
        if len(ciphertext) % blcrypt.BLOCK_SIZE:
            raise InputSizeError(f"Ciphertext size {len(ciphertext)} not multiple of {blcrypt.BLOCK_SIZE}")
        decryptor = blcrypt._ecb(key).decryptor()
        return decryptor.update(bytes(ciphertext)) + decryptor.finalize()

    # ------------------------------------------------------------------
    # Container transcoding
    # ------------------------------------------------------------------

    @staticmethod
    def adler32(data: bytes) -> int:
        return blcrypt.zlib.adler32(bytes(data)) & 0xFFFFFFFF

    @staticmethod
    def _build_footer(document: bytes) -> bytes:
        return blcrypt.struct.pack("<II", blcrypt.adler32(document), len(document) & 0xFFFFFFFF)

    @staticmethod
    def _inflate(compressed: bytes) -> bytes:
        inflater = blcrypt.zlib.decompressobj()
        try:
            document = inflater.decompress(compressed) + inflater.flush()
        except blcrypt.zlib.error as exc:
            raise CompressionError(f"Compressed save payload is corrupted: {exc}") from exc
        if not inflater.eof:
            raise CompressionError("Compressed save payload is truncated")
        return document

    @staticmethod
    def _verify_footer(document: bytes, footer: bytes) -> None:
        if len(footer) != blcrypt.FOOTER_LEN:
            raise ChecksumError("Save footer missing")
        checksum, length = blcrypt.struct.unpack("<II", footer)
        if checksum != blcrypt.adler32(document):
            raise ChecksumError(f"Adler-32 mismatch (footer {checksum:#010x})")
        if length != len(document) & 0xFFFFFFFF:
            raise ChecksumError(f"Length mismatch (footer {length}, actual {len(document)})")

    @staticmethod
    def decrypt_sav(
        sav_data: bytes,
        steam_id: "blcrypt.typing.Union[str, int]",
        *,
        strict: "blcrypt.typing.Optional[bool]" = None
    ) -> bytes:
        if len(sav_data) % blcrypt.BLOCK_SIZE:
            raise InputSizeError(f"Input .sav size {len(sav_data)} not multiple of {blcrypt.BLOCK_SIZE}")
        strict = blcrypt.STRICT_FOOTER if strict is None else strict
        key = blcrypt.derive_key(steam_id)
        padded = blcrypt.decrypt_blocks(key, sav_data)
        body = blcrypt._try_unpad(padded)
        if body is None:
            # some writers skip the padding step
            body = padded
        compressed, footer = body[:-blcrypt.FOOTER_LEN], body[-blcrypt.FOOTER_LEN:]
        document = blcrypt._inflate(compressed)
        if strict:
            blcrypt._verify_footer(document, footer)
        return document

    @staticmethod
    def encrypt_sav(document: bytes, steam_id: "blcrypt.typing.Union[str, int]") -> bytes:
        document = bytes(document)
        packet = blcrypt.zlib.compress(document, blcrypt.DEFLATE_LEVEL) + blcrypt._build_footer(document)
        key = blcrypt.derive_key(steam_id)
        return blcrypt.encrypt_blocks(key, blcrypt.pad(packet))

    # ------------------------------------------------------------------
    # Bit-pack codec
    # ------------------------------------------------------------------

    @staticmethod
    def _bytes_to_bits(data: bytes) -> str:
        return "".join(f"{b:08b}" for b in data)

    @staticmethod
    def _bits_to_bytes(bits: str) -> bytes:
        if len(bits) % 8:
            raise ValueError("bits not multiple of 8")
        return bytes(int(bits[i:i + 8], 2) for i in range(0, len(bits), 8))

    @staticmethod
    def bit_pack_encode(data: bytes, prefix: str = SERIAL_MARKER) -> str:
        bits = blcrypt._bytes_to_bits(data)
        bits += "0" * (-len(bits) % 6)
        chars: "blcrypt.typing.List[str]" = []
        for i in range(0, len(bits), 6):
            value = int(bits[i:i + 6], 2)
            if value < len(blcrypt.CHAR_SET):
                chars.append(blcrypt.CHAR_SET[value])
        return prefix + "".join(chars)

    @staticmethod
    def bit_pack_decode(serial: str) -> bytes:
        if not isinstance(serial, str):
            raise SerialDecodeError(f"Serial must be text, not {type(serial).__name__}")
        payload = serial[len(blcrypt.SERIAL_MARKER):] if serial.startswith(blcrypt.SERIAL_MARKER) else serial
        char_map = blcrypt._CHAR_MAP
        bits = "".join(f"{char_map[ch]:06b}" for ch in payload if ch in char_map)
        bits += "0" * (-len(bits) % 8)
        return blcrypt._bits_to_bytes(bits)

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_path(path_like: "blcrypt.typing.Union[str, blcrypt.pathlib.Path]") -> "blcrypt.pathlib.Path":
        return blcrypt.pathlib.Path(path_like).expanduser()

    @staticmethod
    def _ensure_existing_file(path: "blcrypt.pathlib.Path") -> None:
        if not path.is_file():
            raise FileNotFoundError(f"Input file not found: {path}")

    @staticmethod
    def _ensure_size_limit(path: "blcrypt.pathlib.Path", max_bytes: "blcrypt.typing.Optional[int]" = None) -> None:
        limit = max_bytes or blcrypt.MAX_INPUT_BYTES
        size = path.stat().st_size
        if size > limit:
            raise ValueError(
                f"Input file {path} is {blcrypt._human_readable_size(size)}, "
                f"limit is {blcrypt._human_readable_size(limit)}"
            )

    @staticmethod
    def _human_readable_size(num_bytes: int) -> str:
        units = ["B", "KiB", "MiB", "GiB"]
        value = float(num_bytes)
        for unit in units:
            if value < 1024.0 or unit == units[-1]:
                return f"{value:.2f} {unit}"
            value /= 1024.0
        return f"{value:.2f} TiB"

    @staticmethod
    def _read_input(path_like) -> bytes:
        path = blcrypt._normalize_path(path_like)
        blcrypt._ensure_existing_file(path)
        blcrypt._ensure_size_limit(path)
        return path.read_bytes()

    @staticmethod
    def decrypt_file(
        input_path,
        output_path,
        steam_id: "blcrypt.typing.Union[str, int]",
        *,
        decode_items: bool = False,
        strict: "blcrypt.typing.Optional[bool]" = None
    ) -> "blcrypt.pathlib.Path":
        from .document import dump_yaml, load_yaml
        from .serials import find_serials, insert_decoded_items

        document = blcrypt.decrypt_sav(blcrypt._read_input(input_path), steam_id, strict=strict)
        if decode_items:
            tree = load_yaml(document.decode("utf-8"))
            tree = insert_decoded_items(tree, find_serials(tree))
            document = dump_yaml(tree).encode("utf-8")
        out = blcrypt._normalize_path(output_path)
        out.write_bytes(document)
        return out

    @staticmethod
    def encrypt_file(
        input_path,
        output_path,
        steam_id: "blcrypt.typing.Union[str, int]",
        *,
        encode_items: bool = False
    ) -> "blcrypt.pathlib.Path":
        from .document import dump_yaml, load_yaml
        from .serials import extract_and_encode_serials

        document = blcrypt._read_input(input_path)
        if encode_items:
            tree = load_yaml(document.decode("utf-8"))
            document = dump_yaml(extract_and_encode_serials(tree)).encode("utf-8")
        out = blcrypt._normalize_path(output_path)
        out.write_bytes(blcrypt.encrypt_sav(document, steam_id))
        return out


# SAVE FORMAT - AES-256-ECB( pad16( zlib9(yaml) ++ LE32(adler32) ++ LE32(len) ) )
# SERIAL FORMAT - "@Ug" + discriminant + 6-bit packed payload

# HOW TO USE: python -m blcrypt decrypt -in 1.sav -out 1.yaml -id 7656119XXXXXXXXXX


def _status(ok: bool, text: str) -> str:
    import colorama

    colour = colorama.Fore.GREEN if ok else colorama.Fore.RED
    return f"{colour}{text}{colorama.Style.RESET_ALL}"


def _print_serials(found) -> None:
    if not found:
        print("No item serials found")
        return
    for path, item in found.items():
        stats = ", ".join(f"{name}={value}" for name, value in item.stats.items())
        print(f"{path}: [{item.item_type}] {item.item_category} ({item.confidence}) {stats}")
    print(f"\nFound {len(found)} item serials")


def cli(argv=None) -> int:
    import argparse
    import colorama
    import yaml

    colorama.just_fix_windows_console()

    parser = argparse.ArgumentParser(prog="blcrypt", description="Save container and item serial transcoder")
    parser.add_argument(
        "--silent",
        action="store_true",
        help="Suppress warnings"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    decrypt = subparsers.add_parser("decrypt", help="Decrypt a .sav container to YAML")
    encrypt = subparsers.add_parser("encrypt", help="Encrypt YAML back into a .sav container")
    serials = subparsers.add_parser("serials", help="List item serials found in a save or YAML file")
    for sub in (decrypt, encrypt, serials):
        sub.add_argument("-in", "--input", dest="input", required=True, help="Input file path")
    for sub in (decrypt, encrypt):
        sub.add_argument("-out", "--output", dest="output", required=True, help="Output file path")
        sub.add_argument("-id", "--steam-id", dest="steam_id", required=True, help="Account id used to derive the key")
    serials.add_argument(
        "-id", "--steam-id",
        dest="steam_id",
        default=None,
        help="Account id; when given the input is treated as a .sav container"
    )
    decrypt.add_argument(
        "--decode-items",
        action="store_true",
        help="Append a _DECODED_ITEMS section with editable item stats"
    )
    decrypt.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Verify the Adler-32/length footer after decompressing"
    )
    encrypt.add_argument(
        "--encode-items",
        action="store_true",
        help="Fold edits from the _DECODED_ITEMS section back into the serials"
    )

    args = parser.parse_args(argv)
    if args.silent:
        blcrypt._SILENT_MODE = True

    try:
        if args.command == "decrypt":
            blcrypt.decrypt_file(
                args.input,
                args.output,
                args.steam_id,
                decode_items=args.decode_items,
                strict=args.strict
            )
        elif args.command == "encrypt":
            blcrypt.encrypt_file(args.input, args.output, args.steam_id, encode_items=args.encode_items)
        else:
            from .document import load_yaml
            from .serials import find_serials

            raw = blcrypt._read_input(args.input)
            if args.steam_id:
                raw = blcrypt.decrypt_sav(raw, args.steam_id)
            _print_serials(find_serials(load_yaml(raw.decode("utf-8"))))
            return 0
    except (ValueError, OSError, KeyError, IndexError, TypeError, yaml.YAMLError) as exc:
        print(_status(False, f"FAIL! {exc}"))
        if isinstance(exc, (PaddingError, CompressionError)):
            print("Wrong account id or corrupted input?")
        return 1

    print(_status(True, "SUCCESS!"))
    return 0


def main(argv=None) -> int:
    return cli(argv)


if __name__ == "__main__":
    raise SystemExit(main())
