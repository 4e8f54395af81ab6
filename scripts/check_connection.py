import asyncio
import sys

from pgconnect import Config, ConnectionError, connect


async def main():
    config = Config.from_env()
    try:
        print(f"Testing database connection to {config.host}:{config.port}/{config.database}...")
        database = await connect(config)
        await database.ping()
        print("Connection successful!")
        await database.close()
    except ConnectionError as e:
        print(f"Connection failed: {e}")
        sys.exit(1)

if __name__ == "__main__":
    asyncio.run(main())
