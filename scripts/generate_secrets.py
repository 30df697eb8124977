#!/usr/bin/env python3
"""
Generate production secrets for the branding service.

Usage:
    python scripts/generate_secrets.py
    python scripts/generate_secrets.py --output .env.production
"""
import re
import secrets
import sys


def generate_secrets() -> dict[str, str]:
    """Generate the secrets Settings refuses to start without in production."""
    return {
        "SECRET_KEY": secrets.token_urlsafe(48),
        "POSTGRES_PASSWORD": secrets.token_urlsafe(32),
    }


def main():
    generated = generate_secrets()

    # If --output specified, patch the file in-place
    if len(sys.argv) >= 3 and sys.argv[1] == "--output":
        target = sys.argv[2]
        try:
            with open(target, "r", encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            content = ""

        replacements = 0
        for key, value in generated.items():
            # Replace empty values: KEY=<spaces/comment>
            pattern = rf"^({key}=)\s*(#.*)?$"
            new_content = re.sub(pattern, rf"\g<1>{value}", content, flags=re.MULTILINE)
            if new_content != content:
                replacements += 1
                content = new_content
            elif not re.search(rf"^{key}=", content, flags=re.MULTILINE):
                content += f"{key}={value}\n"
                replacements += 1

        with open(target, "w", encoding="utf-8") as f:
            f.write(content)

        print(f"Patched {replacements} secrets into {target}")
        print("\nRemember to also set:")
        print("   - BRANDING_CNAME_BASE")
        print("   - BACKEND_CORS_ORIGINS")
        print("   - TLS_PROVISIONING_WEBHOOK_URL (optional)")
        return

    # Default: just print the secrets
    print("=" * 60)
    print("  Tenant Branding Service — Generated Production Secrets")
    print("=" * 60)
    for key, value in generated.items():
        print(f"{key}={value}")
    print("=" * 60)
    print()
    print("To patch an env file:")
    print("  python scripts/generate_secrets.py --output .env.production")


if __name__ == "__main__":
    main()
