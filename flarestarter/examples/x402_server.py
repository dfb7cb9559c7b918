"""Run the x402 demo server on X402_PORT (default 3402)"""

from dotenv import load_dotenv

load_dotenv()

from flarestarter.main import FlareStarter

if __name__ == "__main__":
    FlareStarter().create_x402_server().run()
