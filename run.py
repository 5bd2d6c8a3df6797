import asyncio
from datetime import datetime, timezone
import sys
import threading
import time

from dotenv import load_dotenv
import hydra
from loguru import logger
from omegaconf import DictConfig, OmegaConf

from wirehead.chat.directory import DirectoryChannel
from wirehead.exceptions import WireheadError
from wirehead.interactions import handle_action
from wirehead.render.a1111 import StableDiffusionConfig, StableDiffusionRenderer
from wirehead.session.manager import SessionManager
from wirehead.session.options import SessionOptions
from wirehead.utils.logger_setup import setup_logger
from wirehead.utils.serve import serve_until_signal


def _stdin_lines(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
    # readline cannot be cancelled, so it lives on a daemon thread
    for line in sys.stdin:
        loop.call_soon_threadsafe(queue.put_nowait, line)
    loop.call_soon_threadsafe(queue.put_nowait, None)


async def read_actions(manager: SessionManager, conversation_id: str, user: str) -> None:
    """Treat every stdin line as a clicked action token."""
    queue: asyncio.Queue = asyncio.Queue()
    threading.Thread(
        target=_stdin_lines,
        args=(asyncio.get_running_loop(), queue),
        name="stdin-reader",
        daemon=True,
    ).start()

    while (line := await queue.get()) is not None:
        token = line.strip()
        if not token:
            continue
        reply = await handle_action(manager, conversation_id, token, user=user)
        log = logger.info if reply.ok else logger.warning
        log("Reply: {}", reply.content)
        for button in reply.buttons:
            logger.info("  [{}] {}", button.label, button.action)
    logger.info("stdin closed")


async def run_session(cfg: DictConfig) -> None:
    start_time = time.time()

    logger.info("=" * 80)
    logger.info("Wirehead session")
    logger.info("=" * 80)
    logger.info(f"Conversation: {cfg.conversation_id}")
    logger.info(f"Start time: {datetime.now(timezone.utc).isoformat()}")

    options = SessionOptions.model_validate(OmegaConf.to_container(cfg.session, resolve=True))
    sd_config = StableDiffusionConfig.model_validate(
        OmegaConf.to_container(cfg.stable_diffusion, resolve=True)
    )
    renderer = StableDiffusionRenderer(sd_config)
    manager = SessionManager(renderer, stop_timeout=cfg.stop_timeout)
    channel = DirectoryChannel(cfg.output.dir, name="wirehead")
    promote_channel = (
        DirectoryChannel(cfg.output.promote_dir, name="promoted")
        if cfg.output.promote_dir
        else None
    )

    try:
        logger.info(f"Tags: {options.tags or 'bundled default'}")
        session = await manager.start(
            cfg.conversation_id,
            options,
            channel=channel,
            promote_channel=promote_channel,
        )
        logger.info(
            "Posting to {}; paste action tokens here to rate",
            channel.root.resolve(),
        )
        reader = asyncio.create_task(
            read_actions(manager, cfg.conversation_id, cfg.user), name="stdin-actions"
        )
        await serve_until_signal(watch=(session.task, reader), on_stop=manager.close)
    except WireheadError as e:
        logger.error(f"Session failed to start: {e}")
        raise
    finally:
        await manager.close()
        await renderer.close()
        duration = time.time() - start_time
        logger.info(f"Total session duration: {duration:.2f} seconds")
        logger.info("=" * 80)


@hydra.main(version_base=None, config_path="config", config_name="config")
def main(cfg: DictConfig) -> None:
    """Main entrypoint with Hydra configuration management."""
    load_dotenv()

    log_file_path = setup_logger(
        log_dir=cfg.logging.log_dir,
        level=cfg.logging.level,
        rotation=cfg.logging.rotation,
        retention=cfg.logging.retention,
    )
    logger.info(f"Log file: {log_file_path}")
    asyncio.run(run_session(cfg))


if __name__ == "__main__":
    main()
