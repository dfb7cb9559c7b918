"""Deploy MockUSDT0 and X402Facilitator on Coston2, then self-test EIP-3009"""

import asyncio
from dotenv import load_dotenv

load_dotenv()

from flarestarter.main import FlareStarter
from flarestarter.tools.crypto.x402 import deploy_x402, run_eip3009_self_test


async def main():
    starter = FlareStarter()
    flare = starter.flare("coston2")

    print("═" * 60)
    print("x402 Demo Deployment")
    print("═" * 60)
    print(f"Deployer: {flare.address}")

    deployment = await deploy_x402(flare)
    print(f"\nMockUSDT0:       {deployment.token}")
    print(f"X402Facilitator: {deployment.facilitator}")
    print(f"Payee Address:   {deployment.payee}")
    print("\n📝 Add these to your .env file:")
    for line in deployment.env_lines():
        print(line)

    print("\n🔒 Testing transferWithAuthorization...")
    result = await run_eip3009_self_test(flare, deployment.token)
    print(f"   Transaction:       {result['transaction'].hash}")
    print(f"   Nonce used before: {result['nonce_used_before']}")
    print(f"   Nonce used after:  {result['nonce_used_after']}")
    if result["replay_rejected"]:
        print("   ✅ Correctly rejected nonce reuse")
    else:
        print("   ❌ ERROR: nonce reuse should have reverted!")

if __name__ == "__main__":
    asyncio.run(main())
