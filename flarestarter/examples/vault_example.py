"""Deposit into a BoringVault and withdraw the shares again

Reads contract addresses from deployment-addresses.json.
"""

import asyncio
import sys
from dotenv import load_dotenv

load_dotenv()

from flarestarter.main import FlareStarter


async def main(asset: str = "FTestXRP", amount: str = "10"):
    starter = FlareStarter()
    vault = (await starter.create_tools(["vault"], network="coston2"))["vault"]

    print(await vault._arun("info"))
    print(await vault._arun("rates"))
    print(await vault._arun("position"))

    print(f"\n💰 Depositing {amount} {asset}...")
    print(await vault._arun(f"deposit {asset} {amount}"))

    position = await vault.check_user_balance()
    if not position.is_unlocked:
        print(f"⏳ Shares are locked until {position.share_unlock_time}")
        return

    print(f"\n💸 Withdrawing {amount} shares...")
    print(await vault._arun(f"withdraw {asset} {amount}"))

if __name__ == "__main__":
    asyncio.run(main(*sys.argv[1:3]))
