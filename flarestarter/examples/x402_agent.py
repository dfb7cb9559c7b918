"""Interactive x402 payment agent"""

import asyncio
from dotenv import load_dotenv

load_dotenv()

from flarestarter.main import FlareStarter


async def main():
    starter = FlareStarter()
    tools = await starter.create_tools(["x402"], network="coston2")
    await tools["x402"].interactive_mode()

if __name__ == "__main__":
    asyncio.run(main())
