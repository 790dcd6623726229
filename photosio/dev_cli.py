# Import for creation side-effect
from . import database, settings
from .blobs import models as blob_models


def main():
    engine = database.make_engine(settings.settings.database_uri)
    database.Base.metadata.create_all(engine)
