"""Example usage of the unified Flare tool adapter"""

import asyncio
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from flarestarter.tools.adapters import FlareToolRegistry


async def main():
    config = {
        "private_key": os.getenv("PRIVATE_KEY"),
        "network": os.getenv("FLARE_NETWORK", "coston2"),
    }

    valid, message = FlareToolRegistry.validate_config(config)
    if not valid:
        print(f"❌ Configuration error: {message}")
        print("You can copy .env.example to .env and fill in your credentials")
        return

    flare_tool = FlareToolRegistry.create_tool(config)
    await flare_tool.initialize()

    responses = []
    responses.append(await flare_tool.execute("balance"))
    responses.append(await flare_tool.execute("bridge balance"))
    responses.append(await flare_tool.execute("bridge quote 5 sepolia"))
    responses.append(await flare_tool.execute("status"))

    for response in responses:
        if response.success:
            print(f"✅ {response.message}")
            print(f"   Data: {response.data}")
        else:
            print(f"❌ Error: {response.error}")

if __name__ == "__main__":
    asyncio.run(main())
