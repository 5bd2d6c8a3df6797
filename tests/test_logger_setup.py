import threading

from loguru import logger

from wirehead.utils.logger_setup import setup_logger


def test_file_sink_records_thread_name(tmp_path):
    log_file = setup_logger(log_dir=str(tmp_path / "logs"), level="DEBUG")
    try:
        worker = threading.Thread(
            target=lambda: logger.info("from the worker"), name="wirehead-evolution-test"
        )
        worker.start()
        worker.join()
        logger.complete()
    finally:
        logger.remove()

    assert log_file.parent == tmp_path / "logs"
    assert log_file.name.startswith("wirehead_")
    line = next(
        line for line in log_file.read_text(encoding="utf-8").splitlines()
        if "from the worker" in line
    )
    assert "wirehead-evolution-test" in line
