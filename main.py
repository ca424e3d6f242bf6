import asyncio

from core.initialization import initialize_components, load_configuration
from utils.logger import setup_logger


async def run_simulator() -> None:
    """
    Entrypoint coroutine for the live signal simulator.

    Loads the configuration, configures a dedicated logger, wires the
    session and runs it until cancelled (Ctrl+C).
    """
    config = load_configuration()

    logger = setup_logger("Simulator", to_console=True)

    components = initialize_components(config, overrides={"logger": logger})
    session = components["session"]

    await session.run()


def main():
    try:
        asyncio.run(run_simulator())
    except KeyboardInterrupt:
        print("👋 Simulator stopped.")
    except Exception as e:
        print(f"❌ Simulator terminated due to error: {e}")


if __name__ == "__main__":
    main()
