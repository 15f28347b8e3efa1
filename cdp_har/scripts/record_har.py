"""
cdp_har/scripts/record_har.py

Record a Chrome tab's network traffic into a HAR file.
"""

import argparse
import asyncio
import sys
import time

from cdp_har.cdp import AsyncCDPSession
from cdp_har.cdp.connection import (
    check_chrome_running,
    create_new_tab,
    get_page_websocket_url,
    remote_debugging_address_for_port,
)
from cdp_har.config import Config
from cdp_har.data_models.recording import DEFAULT_CAPTURE_MIME_TYPES, RecordingOptions, SessionStats
from cdp_har.har import HarRecorder
from cdp_har.utils.exceptions import CdpHarError

from cdp_har.utils.logger import get_logger

logger = get_logger(__name__)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Record network traffic of a Chrome tab (via the DevTools protocol) into a HAR file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cdp-har-record                                   # Record the first open tab until Ctrl+C
  cdp-har-record --new-tab https://example.com     # Open a tab, record its page load
  cdp-har-record --tab-id <TAB_ID> --save-response -o ./example.har
  cdp-har-record --port 9333 --duration 30

Start Chrome with --remote-debugging-port=9222 first.
Get TAB_ID from http://127.0.0.1:9222/json
        """
    )

    address = parser.add_mutually_exclusive_group()
    address.add_argument(
        "--port",
        type=int,
        help="Chrome DevTools port on 127.0.0.1",
    )
    address.add_argument(
        "--remote-debugging-address",
        default=Config.CDP_REMOTE_DEBUGGING_ADDRESS,
        help=f"Chrome DevTools address (default: {Config.CDP_REMOTE_DEBUGGING_ADDRESS})",
    )

    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "-t", "--tab-id",
        help="Target id of the tab to record (default: first page target)",
    )
    target.add_argument(
        "--new-tab",
        metavar="URL",
        help="Open a new tab and navigate it to URL once recording has started",
    )

    parser.add_argument(
        "-o", "--output",
        default="./network.har",
        help="HAR output file (default: ./network.har)",
    )

    parser.add_argument(
        "--save-response",
        action="store_true",
        help="Fetch response bodies and embed them in the HAR",
    )

    parser.add_argument(
        "--capture-mime-types",
        nargs="*",
        default=list(DEFAULT_CAPTURE_MIME_TYPES),
        help="Declared MIME types of interest (informational)",
    )

    parser.add_argument(
        "--wait-for-retries",
        action="store_true",
        help="On stop, also wait for background body-fetch retries to finish",
    )

    parser.add_argument(
        "--duration",
        type=float,
        help="Stop after this many seconds (default: record until Ctrl+C)",
    )

    args = parser.parse_args(argv)

    if args.port is not None:
        args.remote_debugging_address = remote_debugging_address_for_port(args.port)
    if args.duration is not None and args.duration <= 0:
        parser.error("--duration must be positive")

    return args


async def run_session(ws_url: str, args: argparse.Namespace) -> SessionStats | None:
    """
    Record until the duration elapses or the task is cancelled, then write the HAR.

    Args:
        ws_url: Page-level WebSocket URL.
        args: Parsed command line arguments.

    Returns:
        Body-fetch stats of the recording.
    """
    options = RecordingOptions(
        path=args.output,
        save_response=args.save_response,
        capture_mime_types=args.capture_mime_types,
        wait_for_retries=args.wait_for_retries,
    )

    session = AsyncCDPSession(ws_url=ws_url)
    await session.connect()
    recorder = HarRecorder(session)
    await recorder.start(options)

    try:
        if args.new_tab:
            await session.send("Page.navigate", {"url": args.new_tab})
        if args.duration:
            await asyncio.sleep(args.duration)
        else:
            # Ctrl+C cancels this task
            await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("🛑 Recording interrupted")
    finally:
        await recorder.stop()

    return recorder.last_stats


def main(argv: list[str] | None = None) -> None:
    """Main function."""
    start_time = time.time()
    args = parse_arguments(argv)
    address = args.remote_debugging_address

    if not check_chrome_running(address):
        logger.error("❌ Chrome is not reachable at %s (start it with --remote-debugging-port)", address)
        sys.exit(1)

    try:
        if args.new_tab:
            ws_url = create_new_tab(address)
        else:
            ws_url = get_page_websocket_url(address, tab_id=args.tab_id)
    except CdpHarError as e:
        logger.error("❌ %s", e)
        sys.exit(1)

    logger.info("Recording HAR to %s (Ctrl+C to stop)", args.output)

    stats = None
    try:
        stats = asyncio.run(run_session(ws_url, args))
    except KeyboardInterrupt:
        logger.info("Session stopped by user")
    except CdpHarError as e:
        logger.error("❌ Recording failed: %s", e, exc_info=True)
        sys.exit(1)

    logger.info("Duration: %.1f seconds", time.time() - start_time)
    if stats is not None:
        logger.info(
            "Response bodies: %d attempted, %d succeeded, %d failed",
            stats.attempted, stats.succeeded, stats.failed,
        )


if __name__ == "__main__":
    main()
