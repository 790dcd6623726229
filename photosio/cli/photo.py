import mimetypes
import os

import click
from click_aliases import ClickAliasedGroup

from . import config
from .util import exit_with, handle_request_error

DOWNLOAD_CHUNK_SIZE = 64 * 1024
EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png"}


def make(cli: click.Group):
    @cli.group(name="photo", cls=ClickAliasedGroup, aliases=["p"])
    def photo():
        pass

    @photo.command(name="upload", aliases=["u", "up"])
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    @click.option("--business-id", type=click.INT, required=True)
    @click.option("--caption", type=click.STRING, default=None)
    @click.pass_obj
    def upload(ctx, path, business_id, caption):
        ctx = config.getctx(ctx)
        content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
        data = {"businessId": str(business_id)}
        if caption is not None:
            data["caption"] = caption
        with open(path, "rb") as fp:
            r = ctx.session.post(
                "photos",
                files={"file": (os.path.basename(path), fp, content_type)},
                data=data,
            )
        exit_with(handle_request_error(r))

    @photo.command(name="info", aliases=["i"])
    @click.argument("photo_id", type=click.STRING)
    @click.pass_obj
    def info(ctx, photo_id):
        ctx = config.getctx(ctx)
        exit_with(handle_request_error(ctx.session.get(f"photos/{photo_id}")))

    @photo.command(name="get", aliases=["g", "download"])
    @click.argument("photo_id", type=click.STRING)
    @click.option("--thumb", is_flag=True, help="Fetch the thumbnail instead")
    @click.option("-o", "--output", type=click.Path(dir_okay=False, writable=True))
    @click.pass_obj
    def get(ctx, photo_id, thumb, output):
        ctx = config.getctx(ctx)
        if thumb:
            url = f"media/thumbs/{photo_id}.jpg"
            extension = "jpg"
        else:
            r = ctx.session.get(f"photos/{photo_id}")
            if not r.ok:
                exit_with(handle_request_error(r))
            extension = EXTENSIONS.get(r.json()["content_type"], "jpg")
            url = f"media/photos/{photo_id}.{extension}"
        with ctx.session.get(url, stream=True) as r:
            if not r.ok:
                exit_with(handle_request_error(r))
            output = output or f"{photo_id}.{extension}"
            with open(output, "wb") as out:
                for chunk in r.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    out.write(chunk)
        click.secho(f"{output}", fg="green")

    cli.add_command(photo)
