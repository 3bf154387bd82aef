#!/usr/bin/env python3
"""
Configuration validation script for CI.

Usage: python scripts/validate_config.py [config_dir]
"""

import sys

from research_archive.utils.config_manager import ConfigurationManager
from research_archive.utils.error_handler import ConfigurationError


def main() -> int:
    config_dir = sys.argv[1] if len(sys.argv) > 1 else "config"

    print(f"Validating configuration in {config_dir}/ ...")
    try:
        ConfigurationManager(config_dir).validate_config()
    except ConfigurationError as e:
        print(f"❌ Configuration validation failed: {e}")
        return 1

    print("✅ Configuration validation successful")
    return 0


if __name__ == "__main__":
    sys.exit(main())
