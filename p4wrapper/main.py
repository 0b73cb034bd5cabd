#!/usr/bin/env python3
import sys
from p4wrapper.command_interceptor import CommandInterceptor
from p4wrapper.utils.logging import logger

def main():
    """
    Main entry point for the p4 wrapper.
    Runs the real p4 client, logs the invocation and relays its result.
    """
    try:
        logger.info("p4-wrapper starting, intercepting command: %s", " ".join(sys.argv))
        interceptor = CommandInterceptor()
        exit_code = interceptor.intercept_command(sys.argv)
        logger.info("Command processing completed with exit code: %d", exit_code)
        sys.exit(exit_code)
    except Exception as e:
        logger.error(f"Fatal error: {str(e)}")
        sys.exit(1)

if __name__ == "__main__":
    main()
