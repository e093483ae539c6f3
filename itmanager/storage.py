import os
import shutil
from collections import namedtuple
from datetime import datetime
from pathlib import Path

from flask import current_app
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from werkzeug.utils import secure_filename

from .errors import DocumentError

StoredDocument = namedtuple("StoredDocument", "name size created_at")


def _unsafe_path(filename: str) -> bool:
    # Evita traversal y rutas absolutas Windows/Linux
    if not filename:
        return True
    if ".." in filename or "/" in filename or "\\" in filename:
        return True
    if os.path.isabs(filename) or ":" in filename:
        return True
    return False


class DocumentStore:
    """Bucket ``documents`` en disco: un directorio por equipo, ``<asset_id>/<filename>``."""

    bucket = "documents"

    def __init__(self, root, secret_key, expires=3600):
        self.root = Path(root) / self.bucket
        self.expires = expires
        self._signer = URLSafeTimedSerializer(secret_key, salt="documents-signed-url")

    @classmethod
    def from_app(cls, app=None):
        app = app or current_app
        return cls(app.config["UPLOAD_FOLDER"], app.config["SECRET_KEY"],
                   expires=app.config.get("SIGNED_URL_EXPIRES", 3600))

    def _folder(self, asset_id) -> Path:
        return self.root / str(int(asset_id))

    def _path(self, asset_id, filename) -> Path:
        if _unsafe_path(filename):
            raise DocumentError("Nombre de archivo no válido.")
        return self._folder(asset_id) / filename

    def list(self, asset_id):
        folder = self._folder(asset_id)
        if not folder.is_dir():
            return []
        docs = []
        for p in folder.iterdir():
            if p.is_file():
                st = p.stat()
                docs.append(StoredDocument(p.name, st.st_size, datetime.fromtimestamp(st.st_mtime)))
        return sorted(docs, key=lambda d: (d.created_at, d.name), reverse=True)

    def save(self, asset_id, filename, stream) -> str:
        name = secure_filename(filename or "")
        if not name:
            raise DocumentError("Nombre de archivo no válido.")
        path = self._path(asset_id, name)
        if path.exists():
            raise DocumentError(f"Ya existe un documento llamado {name}.")
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as fh:
            shutil.copyfileobj(stream, fh)
        return name

    def exists(self, asset_id, filename) -> bool:
        try:
            return self._path(asset_id, filename).is_file()
        except DocumentError:
            return False

    def path(self, asset_id, filename) -> Path:
        p = self._path(asset_id, filename)
        if not p.is_file():
            raise DocumentError("Documento no encontrado.")
        return p

    def delete(self, asset_id, filename):
        self.path(asset_id, filename).unlink()

    def delete_folder(self, asset_id):
        folder = self._folder(asset_id)
        if folder.is_dir():
            shutil.rmtree(folder)

    # --- URLs firmadas ---
    def sign(self, asset_id, filename) -> str:
        self._path(asset_id, filename)
        return self._signer.dumps({"asset_id": int(asset_id), "filename": filename})

    def verify(self, token, max_age=None):
        try:
            data = self._signer.loads(token, max_age=max_age or self.expires)
        except SignatureExpired:
            raise DocumentError("El enlace ha caducado.")
        except BadSignature:
            raise DocumentError("Enlace no válido.")
        return data["asset_id"], data["filename"]
