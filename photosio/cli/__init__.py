import logging
import os

import click
from click_aliases import ClickAliasedGroup
from requests_toolbelt.sessions import BaseUrlSession

from . import config, photo, service

DEFAULT_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".config", "pio.json")


class PioSession(BaseUrlSession):
    """requests session rooted at the photo service's url"""

    def __init__(self, cfg: config.Config):
        # urljoin drops the last path segment unless the base ends with a slash
        super().__init__(base_url=cfg.api_url.rstrip("/") + "/")
        self.headers["User-agent"] = "pio"
        self.headers["Accept"] = "application/json"


@click.group(cls=ClickAliasedGroup)
@click.option("--api-url", envvar="PIO_ENDPOINT_URL", help="Photo service url")
@click.option(
    "--config-path",
    default=DEFAULT_CONFIG_PATH,
    envvar="PIO_CONFIG_PATH",
    type=click.Path(dir_okay=False, file_okay=True, writable=True, resolve_path=True),
)
@click.option("-v", "--verbose", is_flag=True, help="Log http requests")
@click.version_option(package_name="photosio")
@click.pass_context
def cli(ctx, api_url, config_path, verbose):
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    conf = config.load_config(config_path)
    if api_url:
        conf.api_url = api_url
    ctx.obj = {
        "configPath": config_path,
        "config": conf,
        "session": PioSession(conf),
    }


@cli.command(name="configure")
@click.argument("api_url", type=click.STRING)
@click.pass_obj
def configure(ctx, api_url):
    """Remember the API url for later commands"""
    ctx = config.getctx(ctx)
    ctx.config.api_url = api_url
    config.save(ctx)
    click.secho(f"Saved {ctx.configPath}", fg="green")


photo.make(cli)
service.make(cli)
