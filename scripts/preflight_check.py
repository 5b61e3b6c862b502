#!/usr/bin/env python3
"""
Pre-flight Check Script for Production Deployment
Validates environment variables, the data directory and application startup
Exits with non-zero code if any check fails
"""

import os
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def check_required_env_var(name, min_length=None):
    """Check if required environment variable exists and optionally validate length"""
    value = os.environ.get(name, '').strip()

    if not value:
        print(f"❌ ERROR: Required environment variable '{name}' is not set", file=sys.stderr)
        return False

    if min_length and len(value) < min_length:
        print(f"❌ ERROR: Environment variable '{name}' must be at least {min_length} characters (current: {len(value)})", file=sys.stderr)
        return False

    print(f"✅ {name}: Set (length: {len(value)})")
    return True


def check_optional_env_var(name, required_if=None, reason=''):
    """Check optional environment variable, required if condition is met"""
    value = os.environ.get(name, '').strip()

    if required_if and required_if():
        if not value:
            print(f"❌ ERROR: Environment variable '{name}' is required {reason}", file=sys.stderr)
            return False
        print(f"✅ {name}: Set")
    else:
        if value:
            print(f"ℹ️  {name}: Set (optional)")
        else:
            print(f"ℹ️  {name}: Not set (optional)")

    return True


def check_data_dir():
    """The JSON storage directory must exist (or be creatable) and be writable"""
    data_dir = Path(os.environ.get('DATA_DIR', 'data'))
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"❌ ERROR: Cannot create DATA_DIR '{data_dir}': {e}", file=sys.stderr)
        return False
    if not os.access(data_dir, os.W_OK):
        print(f"❌ ERROR: DATA_DIR '{data_dir}' is not writable", file=sys.stderr)
        return False
    print(f"✅ DATA_DIR: {data_dir.resolve()}")
    return True


def check_app_import():
    """Check if application can be imported and initialized"""
    try:
        from pitchside.main import create_app
        create_app()
        print("✅ Application imports and initializes successfully")
        return True
    except RuntimeError as e:
        if 'SECRET_KEY' in str(e):
            print(f"❌ ERROR: Application initialization failed: {e}", file=sys.stderr)
            return False
        raise
    except Exception as e:
        print(f"❌ ERROR: Application import/initialization failed: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return False


def main():
    """Run all pre-flight checks"""
    print("=" * 60)
    print("Pitchside Pre-Flight Check")
    print("=" * 60)
    print()

    all_passed = True

    print("Checking required environment variables...")
    all_passed &= check_required_env_var('SECRET_KEY', min_length=32)
    print()

    flask_env = os.environ.get('FLASK_ENV', '').strip()
    if flask_env.lower() == 'production':
        print(f"✅ FLASK_ENV: {flask_env} (production mode)")
    else:
        print(f"⚠️  WARNING: FLASK_ENV is not set to 'production' (current: '{flask_env}')")
        print("   Security features may not be fully enabled")
    print()

    print("Checking storage...")
    all_passed &= check_data_dir()
    print()

    print("Checking email configuration...")
    smtp_on = lambda: os.environ.get('SMTP_ENABLED', '').lower() in ('true', '1', 'on')
    if not smtp_on():
        print("⚠️  WARNING: SMTP_ENABLED is off; sign-in codes are only written to the log")
    for name in ('SMTP_HOST', 'SMTP_USER', 'SMTP_PASSWORD'):
        all_passed &= check_optional_env_var(name, required_if=smtp_on, reason='when SMTP_ENABLED is on')
    check_optional_env_var('APP_BASE_URL')
    print()

    print("Checking AI configuration...")
    check_optional_env_var('AWS_REGION')
    token = os.environ.get('AWS_BEARER_TOKEN_BEDROCK', '').strip()
    if token:
        print(f"✅ AWS_BEARER_TOKEN_BEDROCK: Set (length: {len(token)})")
    else:
        print("⚠️  WARNING: AWS_BEARER_TOKEN_BEDROCK is not set; AI endpoints will fail")
    print()

    print("Checking application initialization...")
    all_passed &= check_app_import()
    print()

    print("=" * 60)
    if all_passed:
        print("✅ All pre-flight checks passed!")
        print("   Application is ready for production deployment.")
        return 0
    else:
        print("❌ Pre-flight checks FAILED")
        print("   Please fix the errors above before deploying.")
        return 1


if __name__ == '__main__':
    sys.exit(main())
