# -*- coding: utf-8 -*-
APP_NAME = "HOSTVEIL"
APP_VERSION = "0.1.0"
APP_DESCRIPTION = "Hide files inside BMP, WAV, PNG, FLV, MP3 and AVI hosts"

# Logging
LOGGING_SETTINGS = {
    "level": "INFO",           # DEBUG/INFO/WARNING/ERROR
    "log_dir": "logs",
    "log_file": "hostveil.log",
    "max_bytes": 2 * 1024 * 1024,
    "backup_count": 3,
    "file_logging": True,
}

# Password -> PRNG seed
SCRAMBLER_SETTINGS = {
    "salt": b"hostveil/scrambler/v1",
    "pbkdf2": {
        "iterations": 20_000,
        "key_len": 8,
    },
    # rng() % mask_modulus is xor-ed onto every hidden byte
    "mask_modulus": 255,
}

# Embedding engines
ENGINE_SETTINGS = {
    # above this many bytes (payload or host data) LSB runs in file order
    "large_capacity_threshold": 1_000_000,
    "mp3_header_bits": 3,
    "bmp_metadata_max": 0xFFFFFFFF,
    "eoc_padding_byte": 0x1C,
    "png_chunk_type": b"hvSt",
    "default_password_length": 64,
    "password_max_length": 64,
    "io_block_size": 64 * 1024,
}

# Result signature trailer
SIGNATURE_SETTINGS = {
    "magic": b"\x00HVSIG",
}
