import asyncio
import logging
import os
import sys

repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
src_root = os.path.join(repo_root, "src")
if src_root not in sys.path:
    sys.path.insert(0, src_root)

try:
    from rich.logging import RichHandler

    from auth_pipeline import build_pipeline, load_settings
    from auth_pipeline.demo import ACTIONS, DEFAULT_ACTIONS, run_session
except ModuleNotFoundError as exc:
    print("Missing dependency. Run 'pip install -e .' from the repository root.")
    raise SystemExit(1) from exc


async def run_demo(actions) -> int:
    unknown = [action for action in actions if action not in ACTIONS]
    if unknown:
        print(f"Unknown action(s): {', '.join(unknown)}. Expected: {', '.join(ACTIONS)}")
        return 2

    settings = load_settings()
    pipeline = build_pipeline(settings)
    print(f"Dry run: {settings.mode} endpoint, actions = {', '.join(actions)}")
    try:
        await run_session(pipeline, actions, destination=settings.api_url)
        await pipeline.drain()
    finally:
        close = getattr(pipeline.transport, "close", None)
        if close is not None:
            await close()
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO, format="%(message)s", handlers=[RichHandler(show_path=False)]
    )
    raise SystemExit(asyncio.run(run_demo(sys.argv[1:] or list(DEFAULT_ACTIONS))))
