"""
Entry point for the DjedOps API server.

Usage:
    python -m djedops
    djedops  # if installed via pip
"""

import sys


# Try to use uvloop for better performance
try:
    import uvloop  # noqa: F401

    UVLOOP_AVAILABLE = True
except ImportError:
    UVLOOP_AVAILABLE = False


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    import uvicorn

    from djedops import __version__
    from djedops.config.settings import get_settings
    from djedops.dashboard.server import create_app
    from djedops.telemetry.logger import setup_logging

    try:
        settings = get_settings()
    except Exception as e:
        print(f"Configuration error: {e}")
        return 1

    uvloop_enabled = UVLOOP_AVAILABLE and settings.use_uvloop

    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     DJEDOPS API v{__version__:<44}║
╚═══════════════════════════════════════════════════════════════╝
    """
    )
    print("Configuration:")
    print(f"  Listening:      http://{settings.host}:{settings.port}")
    print(f"  DEX prices:     {'DEMO' if settings.demo_mode else 'Spectrum'}")
    print(f"  Poll interval:  {settings.poll_interval_s:.0f}s")
    print(f"  History:        {settings.history_path}")
    print(f"  uvloop:         {'Enabled' if uvloop_enabled else 'Disabled'}")
    print()

    logging_pipeline = setup_logging(settings.log_level, settings.log_file)
    try:
        uvicorn.run(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            log_level="warning",
            loop="uvloop" if uvloop_enabled else "asyncio",
        )
    except KeyboardInterrupt:
        print("\nInterrupted by user")
    finally:
        logging_pipeline.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
