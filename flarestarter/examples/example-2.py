from flarestarter.main import FlareStarter
import asyncio

# Deploy the three FTSOv2 adapters, refresh them and read the cached price


async def main():
    starter = FlareStarter()
    tools = await starter.create_tools(["adapters"], network="coston2")
    adapters = tools["adapters"]

    for kind in ["chainlink", "pyth", "api3"]:
        print(f"\n📦 Deploying {kind} adapter...")
        address = await adapters.deploy(kind)
        print(f"   Deployed to: {address}")

        print(await adapters._arun(f"read {kind} {address}"))
        print(await adapters._arun(f"refresh {kind} {address}"))
        print(await adapters._arun(f"read {kind} {address}"))

    print(f"\n📊 Transactions: {starter.get_analytics()}")

if __name__ == "__main__":
    asyncio.run(main())
