"""
Connection diagnostic for the realtime channel.

Connects, optionally authenticates and joins a contest, then logs every
inbound event until the listen window closes.

    codestorm-diagnose --origin http://localhost:8080 --backend-host localhost:3001 \
        --user-id u-admin --contest spring-open --seconds 30
"""

import argparse
import logging
import time

from .realtime.channel import ChannelConfig, ChannelOptions, RealtimeChannel
from .realtime.errors import ConnectionFailedError
from .realtime.messages import EventType
from .realtime.transport import endpoint_url

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='CodeStorm realtime channel diagnostic')
    parser.add_argument('--origin', default='http://localhost:8080',
                        help='Page origin the endpoint scheme is derived from')
    parser.add_argument('--backend-host', default='localhost:3001',
                        help='host:port of the realtime server')
    parser.add_argument('--user-id', help='Roster user to authenticate as')
    parser.add_argument('--contest', help='Contest to join once authenticated')
    parser.add_argument('--seconds', type=float, default=10.0,
                        help='How long to listen for events (default: 10)')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = ChannelConfig(url=endpoint_url(args.origin, args.backend_host))
    options = ChannelOptions(
        on_message=lambda message: logger.info(f"<- {message.type}: {message.payload}"),
        on_state_change=lambda old, new: logger.info(f"state {old.value} -> {new.value}"),
        on_error=lambda error: logger.error(f"channel error: {error}"),
    )
    channel = RealtimeChannel(config, options)

    if args.contest:
        channel.on(EventType.AUTHENTICATED, lambda payload: channel.join_topic(args.contest))

    try:
        channel.connect(args.user_id)
    except ConnectionFailedError as e:
        logger.error(f"Could not reach {config.url}: {e}")
        return 1

    try:
        time.sleep(args.seconds)
    finally:
        channel.disconnect()
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
