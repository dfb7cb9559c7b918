"""Weather insurance walkthrough on Coston2

    python weather_insurance_example.py min_temp deploy
    python weather_insurance_example.py min_temp create
    python weather_insurance_example.py min_temp claim 0
    python weather_insurance_example.py min_temp resolve 0
"""

import asyncio
import sys
from dotenv import load_dotenv

load_dotenv()

from flarestarter.main import FlareStarter


async def main():
    if len(sys.argv) < 3:
        print(__doc__)
        return

    kind, action, *rest = sys.argv[1:]
    starter = FlareStarter()
    insurance = (await starter.create_tools(["insurance"], network="coston2"))["insurance"]

    print(await insurance._arun(" ".join([action, kind, *rest])))

    if action != "deploy" and rest:
        print(await insurance._arun(f"policy {kind} {rest[0]}"))

if __name__ == "__main__":
    asyncio.run(main())
