import argparse
import asyncio
import logging

from engine.models import EconomyConfig
from .server import CasinoServer


def main() -> None:
    parser = argparse.ArgumentParser(description="Video poker host server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=3001)
    parser.add_argument("--win-pool", type=int, default=50_000, help="Initial win pool funding payouts")
    parser.add_argument("--starting-wallet", type=int, default=1000, help="Wallet granted to every new user")
    parser.add_argument("--house-cut", type=int, default=25, help="Percent of a losing ante kept by the house")
    parser.add_argument(
        "--no-demo-user",
        action="store_true",
        help="Do not seed the user1/pass1 demo account",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    config = EconomyConfig(
        starting_wallet=args.starting_wallet,
        initial_win_pool=args.win_pool,
        house_cut_percent=args.house_cut,
        seed_demo_user=not args.no_demo_user,
    )
    server = CasinoServer(config)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
