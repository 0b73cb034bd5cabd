#!/usr/bin/env python3
import argparse
import json
import os
import shutil
import sys
from typing import Optional
from p4wrapper.errors import PreferencesError
from p4wrapper.preferences import PreferencesLoader
from p4wrapper.utils.logging import logger
from p4wrapper.utils.platforms import Platform, current_platform

HELP_TEXT = '''p4-wrapper CLI - Manage the p4 debugging wrapper

Commands:
  prefs show           Print the effective preferences
  prefs set            Update the preferences file
  install              Put the wrapper in front of a p4 client
  uninstall            Restore the original p4 client

Preferences:
  --executable-path P  Path of the real p4 client
  --log-directory D    Directory holding p4-debug.log
  --max-output-lines N Lines of output shown to the caller (0 = all)
  --verbose            Pass "-v 4" to p4 on every call
  --no-verbose         Stop passing "-v 4"

Examples:
  # Show current preferences
  p4-wrapper-cli prefs show

  # Log to a project directory and keep output short
  p4-wrapper-cli prefs set --log-directory ./logs --max-output-lines 50

  # Wrap the p4 client found on PATH
  p4-wrapper-cli install --target /usr/local/bin/p4
'''

def parse_args(args=None):
    """Parse command line arguments.

    Args:
        args: Optional list of arguments. If None, uses sys.argv[1:].
    """
    parser = argparse.ArgumentParser(
        description=HELP_TEXT,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = parser.add_subparsers(dest='command')

    prefs_parser = subparsers.add_parser('prefs')
    prefs_subparsers = prefs_parser.add_subparsers(dest='prefs_command')
    prefs_subparsers.add_parser('show')
    set_parser = prefs_subparsers.add_parser('set')
    set_parser.add_argument('--executable-path')
    set_parser.add_argument('--log-directory')
    set_parser.add_argument('--max-output-lines', type=int)
    set_parser.add_argument('--verbose', dest='verbose', action='store_true', default=None)
    set_parser.add_argument('--no-verbose', dest='verbose', action='store_false')

    install_parser = subparsers.add_parser('install')
    install_parser.add_argument('--target', help='Path of the p4 client to wrap')

    uninstall_parser = subparsers.add_parser('uninstall')
    uninstall_parser.add_argument('--target', help='Path of the wrapped p4 client')

    return parser.parse_args(args)

def show_prefs(loader: PreferencesLoader) -> int:
    """Print the effective preferences as JSON."""
    prefs = loader.load()
    print(json.dumps(prefs.to_document(), indent=2, sort_keys=True))
    return 0

def set_prefs(args, loader: PreferencesLoader) -> int:
    """Merge command line values into the preferences file."""
    updates = {}
    if args.executable_path is not None:
        updates['executablePath'] = args.executable_path
    if args.log_directory is not None:
        updates['logDirectory'] = os.path.abspath(args.log_directory)
    if args.max_output_lines is not None:
        updates['maxOutputLines'] = args.max_output_lines
    if args.verbose is not None:
        updates['verbose'] = args.verbose

    if not updates:
        logger.error("Nothing to set. See 'p4-wrapper-cli --help'")
        return 1

    loader.save(updates)
    return 0

def find_p4_path() -> str:
    """Find the p4 client on PATH"""
    path = shutil.which('p4')
    if path and os.path.exists(path) and os.access(path, os.X_OK):
        return path
    raise FileNotFoundError("Could not find p4 binary on PATH")

def is_already_installed(target: str, loader: PreferencesLoader, platform: Platform) -> bool:
    """Check whether the real client has been moved aside and preferences point at it"""
    backup_path = platform.backup_path(target)
    if not os.path.lexists(backup_path):
        return False

    try:
        prefs = loader.load()
    except PreferencesError:
        return False
    return os.path.abspath(prefs.executable_path) == os.path.abspath(backup_path)

def install_wrapper(target: str, loader: PreferencesLoader, platform: Platform,
                    interpreter: Optional[str] = None) -> bool:
    """Move the real client aside, write the wrapper shim and point preferences at the client.

    The client is renamed rather than copied, so a symlinked target is kept
    as a symlink and the file it points to is never written.
    """
    try:
        if is_already_installed(target, loader, platform):
            logger.info("p4-wrapper is already installed at %s", target)
            return True

        if not os.path.isfile(target):
            logger.error("No p4 client at %s", target)
            return False

        backup_path = platform.backup_path(target)
        if os.path.lexists(backup_path):
            logger.error("Refusing to install: %s already exists", backup_path)
            return False

        os.rename(target, backup_path)
        logger.info("Moved real p4 to %s", backup_path)

        loader.save({'executablePath': backup_path})

        shim_path = platform.shim_path(target)
        with open(shim_path, 'x', newline='') as f:
            f.write(platform.shim_script(interpreter or sys.executable))
        os.chmod(shim_path, 0o755)
        logger.info("Installed wrapper at %s", shim_path)
        return True

    except (OSError, PreferencesError) as e:
        logger.error("Failed to install wrapper: %s", e)
        return False

def uninstall_wrapper(target: str, loader: PreferencesLoader, platform: Platform) -> bool:
    """Remove the shim and move the real client saved by install_wrapper back."""
    try:
        backup_path = platform.backup_path(target)
        if not os.path.lexists(backup_path):
            logger.info("p4-wrapper is not installed at %s, nothing to clean up", target)
            return True

        shim_path = platform.shim_path(target)
        if os.path.lexists(shim_path):
            os.remove(shim_path)
            logger.info("Removed wrapper at %s", shim_path)

        os.replace(backup_path, target)
        logger.info("Restored original p4 to %s", target)

        loader.save({'executablePath': target})
        return True

    except (OSError, PreferencesError) as e:
        logger.error("Failed to uninstall wrapper: %s", e)
        return False

def main(argv=None):
    """Main function to handle p4-wrapper CLI commands."""
    args = parse_args(argv)
    platform = current_platform()
    loader = PreferencesLoader(platform=platform)

    try:
        if args.command == 'prefs' and args.prefs_command == 'show':
            return show_prefs(loader)
        if args.command == 'prefs' and args.prefs_command == 'set':
            return set_prefs(args, loader)
    except (OSError, PreferencesError) as e:
        logger.error("Preferences error: %s", e)
        return 1

    if args.command in ('install', 'uninstall'):
        target = args.target
        if not target:
            try:
                target = find_p4_path()
            except FileNotFoundError as e:
                logger.error("%s. Pass --target explicitly.", e)
                return 1
        if args.command == 'install':
            return 0 if install_wrapper(target, loader, platform) else 1
        return 0 if uninstall_wrapper(target, loader, platform) else 1

    logger.error("Invalid command. Use 'p4-wrapper-cli prefs show|set', 'install' or 'uninstall'")
    return 1

if __name__ == '__main__':
    sys.exit(main())
