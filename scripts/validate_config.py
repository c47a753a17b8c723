#!/usr/bin/env python3
"""Configuration validation script."""

import argparse
import sys
from pathlib import Path
from typing import List

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from wbp_app.config.loader import ConfigLoader
from wbp_app.config.validation import ConfigValidator, ValidationError
from wbp_app.errors import ConfigurationError


def validate_settings(loader: ConfigLoader) -> List[ValidationError]:
    """Validate the merged defaults and settings file."""
    config = loader.merge_config()
    return ConfigValidator.validate_config(config)


def main():
    """Main validation function."""
    parser = argparse.ArgumentParser(description="Validate gate controller configuration")
    parser.add_argument("--config-dir", type=Path, default=None,
                        help="Directory containing settings.yaml")
    args = parser.parse_args()

    print("🔍 Validating Work Before Play configuration...")

    loader = ConfigLoader.create(args.config_dir)
    print(f"   Settings directory: {loader.config_dir}")

    all_valid = True

    try:
        errors = validate_settings(loader)
    except ConfigurationError as e:
        print(f"❌ {e}")
        sys.exit(1)

    if errors:
        print(f"❌ Found {len(errors)} validation errors:")
        for error in errors:
            print(f"  • {error.field}: {error.message} (value: {error.value})")
        all_valid = False
    else:
        print("✅ Settings file is valid")

    # Typed build catches unknown fields the validator does not look at
    print("\n📋 Building typed configuration...")
    try:
        config = loader.build_config()
        print(f"✅ Grant duration: {config.gate.grant_duration_ms} ms")
        print(f"✅ Reconciliation period: {config.gate.reconciliation_period_ms} ms")
        print(f"✅ Store backend: {config.store.backend}")
        print(f"✅ Gated domains: {len(config.gate.gate_set)}")
    except ConfigurationError as e:
        print(f"❌ {e}")
        all_valid = False

    if all_valid:
        print("\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print("\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
