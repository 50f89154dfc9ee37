#!/usr/bin/env python3
"""
Generate secure random keys for SECRET_KEY and ENCRYPT_KEY.

Run with: python generate_keys.py
"""
import secrets


def generate_keys() -> dict[str, str]:
    return {
        # 64 bytes for JWT signing
        "SECRET_KEY": secrets.token_hex(64),
        # 32 bytes for the AES-256 master key, hex so it is used as-is
        "ENCRYPT_KEY": secrets.token_hex(32),
    }


if __name__ == "__main__":
    print("\n🔑 Generating secure keys for DocuNest...\n")
    print("Copy these values to your .env file:\n")
    print("─" * 60)
    for name, value in generate_keys().items():
        print(f"{name}={value}")
    print("─" * 60)
    print("\n⚠️  Keep these keys secure and never commit them to version control!")
    print("⚠️  Changing ENCRYPT_KEY makes every stored document unreadable.\n")
