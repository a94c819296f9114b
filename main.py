# main.py
import argparse
import logging
import os
from datetime import datetime, timezone

from dotenv import load_dotenv

import config
from arweave_source import ArweaveSource
from block_search import find_closest_block
from errors import ConfigError, ConnectivityError, FetchError, PersistError
from evm_source import EvmSource
from start_block_config import StartBlockConfig

logger = logging.getLogger(__name__)

# Network family -> ledger source constructor, each called as factory(endpoint)
SOURCE_FACTORIES = {
    config.EVM: EvmSource.from_endpoint,
    config.LEDGER_GATEWAY: ArweaveSource.from_endpoint,
}


def format_timestamp(ts):
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    except (OverflowError, OSError, ValueError):
        return str(ts)


def build_source(network, factories=None, environ=None):
    factories = SOURCE_FACTORIES if factories is None else factories
    factory = factories.get(network.family)
    if factory is None:
        raise ValueError(f"Unsupported network family: {network.family}. Supported options are: {list(factories)}")
    endpoint = network.endpoint(environ)
    if not endpoint:
        raise ConnectivityError(f"{network.env_var} is not set in the environment.")
    return factory(endpoint)


def locate_start_block(source, target_timestamp):
    """
    Search `source` for the start block and print how close it landed.
    Returns the block height.
    """
    closest_block = find_closest_block(source, target_timestamp)
    block_ts = source.get_block_timestamp(closest_block)

    print(f"Closest block number: {closest_block}")
    print(f"Block timestamp: {format_timestamp(block_ts)}")
    print(f"Difference from target: {block_ts - target_timestamp} seconds")
    return closest_block


def update_start_blocks(networks, start_config, target_timestamp, factories=None, environ=None):
    """
    Run the search for every network in turn and record each result in
    `start_config`.  A network that fails is logged and left untouched.
    Returns {network name: start block} for the networks that succeeded.
    """
    results = {}
    for network in networks:
        print(f"Network: {network.name}")
        source = None
        try:
            source = build_source(network, factories, environ)
            closest_block = locate_start_block(source, target_timestamp)
        except FetchError as e:
            logger.error("Error finding closest block for %s: %s", network.name, e)
            print()
            continue
        except ValueError as e:
            logger.error("Skipping %s: %s", network.name, e)
            print()
            continue
        finally:
            if source is not None:
                source.close()

        start_config.set_start_block(network.name, closest_block)
        results[network.name] = closest_block
        print(f"Updated start block for {network.name}: {closest_block}")
        print()
    return results


def select_networks(names=None):
    if not names:
        return list(config.NETWORKS)
    selected = [n for n in config.NETWORKS if n.name in names]
    unknown = set(names) - {n.name for n in selected}
    for name in sorted(unknown):
        logger.warning("Unknown network %r, ignoring. Known networks: %s", name, [n.name for n in config.NETWORKS])
    return selected


def main(config_path=config.CONFIG_PATH, target_timestamp=config.TARGET_TIMESTAMP,
         network_names=None, backup=True, factories=None):
    # -------------------------------
    # Environment and Config Loading
    # -------------------------------
    load_dotenv()
    logging.basicConfig(level=config.log_level(), format=config.LOG_FORMAT)
    try:
        start_config = StartBlockConfig.load(config_path)
    except ConfigError as e:
        logger.critical("%s", e)
        raise SystemExit(1) from e

    print("Network start blocks from config:")
    for network_name, block in start_config.start_blocks.items():
        print(f"{network_name}: {block}")
    print()

    # -------------------------------
    # Search Every Network
    # -------------------------------
    results = update_start_blocks(
        select_networks(network_names), start_config, target_timestamp,
        factories=factories, environ=os.environ,
    )

    # -------------------------------
    # Persist
    # -------------------------------
    if backup:
        try:
            start_config.backup()
        except PersistError as e:
            logger.warning("%s; saving without a backup.", e)
    try:
        start_config.save()
    except PersistError as e:
        logger.critical("%s", e)
        raise SystemExit(1) from e

    print("Config file updated successfully.")
    return results


if __name__ == "__main__":
    # Set up argument parser
    parser = argparse.ArgumentParser(description='Find each network\'s block closest to a timestamp and record it as its start block')
    parser.add_argument('--config', default=str(config.CONFIG_PATH),
                        help='Path to the start block config document')
    parser.add_argument('--timestamp', type=int, default=config.TARGET_TIMESTAMP,
                        help='Target Unix timestamp in seconds')
    parser.add_argument('--networks', nargs='+', metavar='NAME',
                        help='Only process these networks')
    parser.add_argument('--no-backup', action='store_true',
                        help='Do not keep the previous document as <config>.old')

    # Parse arguments
    args = parser.parse_args()

    main(config_path=args.config, target_timestamp=args.timestamp,
         network_names=args.networks, backup=not args.no_backup)
