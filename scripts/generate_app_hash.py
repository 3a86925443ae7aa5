#!/usr/bin/env python3
"""Print the app-identity hash that verification SMS messages must carry."""

import argparse

from otpautoread.sms.app_hash import format_sms, generate_app_hash

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("package_name")
    parser.add_argument("signature", help="Signing certificate as a hex string")
    args = parser.parse_args()

    app_hash = generate_app_hash(args.package_name, args.signature)
    print(f"\nAPP_HASH={app_hash}\n")
    print("Send a test message such as:\n")
    print(format_sms("1234", app_hash))
