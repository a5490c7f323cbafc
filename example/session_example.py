from gasless_relay.config import load_settings
from gasless_relay.engine.executors import StatusStream
from gasless_relay.engine.session import create_wallet_session
from gasless_relay.schemas.backends import RemoteRelaySignerBackend

# Reads GASLESS_BUNDLER_URL / GASLESS_PAYMASTER_URL / GASLESS_RPC_URL from the environment or .env
settings = load_settings(bridge_url="https://bridge.example.org/rpc")  # Replace with actual bridge

session = create_wallet_session(settings)


async def print_status(stream: StatusStream):
    async for status in stream:
        print("Status:", status)


async def main():
    stream = StatusStream(session.event_bus)
    printer = asyncio.create_task(print_status(stream))

    await session.connect(RemoteRelaySignerBackend())
    if session.snapshot.address:
        outcome = await session.transfer()
        print("Outcome:", outcome.to_canonical_json())
        await session.disconnect()

    stream.close()
    await printer


if __name__ == "__main__":
    import asyncio
    asyncio.run(main())
