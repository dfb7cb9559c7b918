from flarestarter.main import FlareStarter
import asyncio

# Scan the FXRP OFT peers on Sepolia, then bridge FXRP from Coston2


async def main():
    starter = FlareStarter()

    sepolia = await starter.create_tools(["bridge"], network="sepolia")
    scan = await sepolia["bridge"].scan_peers(starter.config.sepolia_fxrp_oft)
    print(f"\n🔎 Scanned {scan.scanned} endpoints, {len(scan.peers)} peers configured:")
    print(scan.to_markdown_table())
    print(f"\nAvailable routes: {', '.join(scan.routes) or 'none'}")

    coston2 = await starter.create_tools(["bridge"], network="coston2")
    result = await coston2["bridge"]._arun("quote 10 sepolia")
    print(f"\n💰 {result}")

    result = await coston2["bridge"]._arun("bridge 10 sepolia")
    print(f"\n🌉 {result}")

if __name__ == "__main__":
    asyncio.run(main())
