import logging
import threading

import click

from photosio import settings as settings_module


def make(cli: click.Group):
    @cli.command(name="worker", aliases=["w"])
    @click.option("--concurrency", type=click.IntRange(min=1), default=1)
    @click.option("--drain", is_flag=True, help="Exit once the queue is empty")
    def worker(concurrency, drain):
        # Dynamic, expensive imports
        from photosio.blobs import create_blob_store
        from photosio.derivation import DerivationWorker, run_workers
        from photosio.queue import create_work_queue

        settings = settings_module.settings
        logging.basicConfig(level=settings.log_level.upper())
        store = create_blob_store(settings)

        def build_worker():
            return DerivationWorker(
                store,
                create_work_queue(settings),
                width=settings.thumbnail_width,
                height=settings.thumbnail_height,
                spool_size=settings.spool_size,
            )

        stop = threading.Event()
        try:
            handled = run_workers(
                concurrency,
                build_worker,
                poll_timeout=settings.poll_timeout,
                stop_when_idle=drain,
                stop_event=stop,
            )
        except KeyboardInterrupt:
            stop.set()
            raise
        click.secho(f"Handled {handled} jobs", fg="green")

    @cli.command(name="sweep")
    @click.option(
        "--grace",
        type=click.FloatRange(min=0),
        default=None,
        help="Only remove chunks older than this many seconds",
    )
    def sweep(grace):
        """Remove blob chunks that no stored blob references"""
        from photosio.blobs import create_blob_store

        settings = settings_module.settings
        logging.basicConfig(level=settings.log_level.upper())
        removed = create_blob_store(settings).sweep(grace)
        click.secho(f"Removed {removed} objects", fg="green")

    @cli.command(name="serve")
    @click.option("--host", type=click.STRING, default="127.0.0.1")
    @click.option("--port", type=click.INT, default=8100)
    def serve(host, port):
        import uvicorn

        settings = settings_module.settings
        logging.basicConfig(level=settings.log_level.upper())
        uvicorn.run(
            "photosio.app:create_app",
            factory=True,
            host=host,
            port=port,
            log_level=settings.log_level.lower(),
        )
