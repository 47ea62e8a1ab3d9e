import argparse, os, sys
from .errors import BacpacFixError
from .fixer import ENV_BACKUP_DIR, FixerOptions, process_bacpac, setup_logging, verify_bacpac


def build():
    p = argparse.ArgumentParser(prog="bacpacfix", description="Remove AlwaysOn/XTP features from .bacpac packages")
    sp = p.add_subparsers(dest="cmd", required=True)
    f = sp.add_parser("fix", help="Clean model.xml and reseal origin.xml in place")
    f.add_argument("bacpac")
    f.add_argument("--no-backup", action="store_true", help="Do not copy the package before rewriting it")
    f.add_argument(
        "--backup-dir",
        default=None,
        help=f"Directory for the backup copy (default: ${ENV_BACKUP_DIR} or the package's directory)",
    )
    f.add_argument("--dry-run", action="store_true", help="Report whether changes are needed without writing")
    f.add_argument("--debug", action="store_true")
    f.add_argument("--log", default=None, help="Also write the log to this file")
    v = sp.add_parser("verify", help="Check the model.xml checksum recorded in origin.xml")
    v.add_argument("bacpac")
    v.add_argument("--debug", action="store_true")
    return p


def _run_fix(a) -> int:
    options = FixerOptions(
        source_bacpac=a.bacpac,
        no_backup=a.no_backup,
        backup_dir=a.backup_dir or os.environ.get(ENV_BACKUP_DIR) or None,
        dry_run=a.dry_run,
    )
    result = process_bacpac(options)

    if not result.success:
        print(f"❌ {result.message}", file=sys.stderr)
        return result.exit_code

    if not result.changed:
        print(f"ℹ️  {result.message}")
        return 0

    print(f"✅ {result.message}")
    if result.backup_path:
        print(f"🗂️  Backup: {result.backup_path}")
    if result.model_hash:
        print(f"🔒 SHA256 (model.xml): {result.model_hash}")
    return 0


def _run_verify(a) -> int:
    try:
        result = verify_bacpac(a.bacpac)
    except BacpacFixError as e:
        print(f"❌ {e}", file=sys.stderr)
        return e.exit_code

    print(f"🔒 SHA256 (model.xml): {result.model_hash}")
    if result.matches is None:
        print("ℹ️  origin.xml has no /model.xml checksum record")
        return 0
    if result.matches:
        print("✅ origin.xml checksum matches")
        return 0
    print(f"❌ origin.xml checksum mismatch: {result.stored_hash}", file=sys.stderr)
    return 1


def main(argv=None):
    a = build().parse_args(argv)
    setup_logging(a.debug, getattr(a, "log", None))

    try:
        if a.cmd == "fix":
            sys.exit(_run_fix(a))
        sys.exit(_run_verify(a))
    except KeyboardInterrupt:
        print("Operation cancelled by user", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
