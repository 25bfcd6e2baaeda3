#!/usr/bin/env python3
"""
Download-and-upload relay.
- Listens for HTTP requests carrying ?url=<percent-encoded URL>, one at a time.
- Downloads with an external tool into a scratch directory; answers 200/500.
- Ships the downloaded file over FTP with lftp to the first ~/.netrc host.
"""

import argparse
import functools
import logging
import os
import signal
import sys

from config.settings import LOG_FORMAT, UPLOADER
from download.downloader import CliDownloader
from engine.config import read_relay_config
from engine.errors import StartupError
from engine.job_dir import JobDirectory
from engine.job_loop import JobLoop
from engine.notify import telegram_notify
from engine.runtime import get_runtime_info, missing_tools
from upload.credentials import load_credentials
from upload.ftp import LftpUploader

logger = logging.getLogger("relay")


def setup_logging(log_dir, level="INFO"):
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        filename=os.path.join(log_dir, "relay.log"),
        level=level,
        format=LOG_FORMAT,
    )
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    console.setLevel(level)
    logging.getLogger("").addHandler(console)


def build_job_loop(config, credentials):
    downloader = CliDownloader(
        config.downloader,
        config.downloader_args,
        timeout=config.download_timeout_seconds,
    )
    uploader = LftpUploader(
        remote_dir=config.ftp_remote_dir,
        port=config.ftp_port,
        timeout=config.upload_timeout_seconds,
    )
    notify = None
    if config.telegram:
        notify = functools.partial(telegram_notify, config.telegram)
    return JobLoop(JobDirectory(config.download_dir), downloader, uploader, credentials, notify=notify)


def _raise_keyboard_interrupt(signum, frame):
    raise KeyboardInterrupt


def main(argv=None):
    parser = argparse.ArgumentParser(description="Download a URL on request and upload it over FTP.")
    parser.add_argument("--config", help="Path to config.json (default: $RELAY_CONFIG or ./config.json).")
    parser.add_argument("--netrc", help="Credentials file (default: ~/.netrc).")
    parser.add_argument("--log-level", help="Override log_level from the config file.")
    args = parser.parse_args(argv)

    try:
        config = read_relay_config(args.config)
    except StartupError as e:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        logger.error("%s", e)
        return 1

    setup_logging(config.log_dir, (args.log_level or config.log_level).upper())
    info = get_runtime_info()
    logger.info(
        "Starting relay %s (python %s, yt-dlp %s)",
        info["app_version"],
        info["python_version"],
        info["yt_dlp_version"],
    )
    for tool in missing_tools(config.downloader, UPLOADER):
        logger.warning("%s not found in PATH; jobs needing it will fail", tool)

    try:
        credentials = load_credentials(args.netrc)
        job_loop = build_job_loop(config, credentials)
        job_loop.bind(config.bind_address, config.listen_port)
    except StartupError as e:
        logger.error("%s", e)
        return 1

    logger.info("Uploading to ftp host %s, scratch dir %s", credentials.host, config.download_dir)
    signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)
    try:
        job_loop.run_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        job_loop.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
