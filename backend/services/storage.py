"""
Armazenamento de ficheiros em S3 (ou Cloudflare R2, MinIO)
Guarda fotos dos imóveis e as imagens de assinatura dos formulários.
"""
import io
import re
import base64
import asyncio
import logging
from typing import Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from config import (
    AWS_ACCESS_KEY, AWS_SECRET_KEY, AWS_BUCKET_NAME, AWS_REGION,
    AWS_ENDPOINT_URL, STORAGE_PUBLIC_BASE_URL, STORAGE_MAX_IMAGE_MB,
)
from services.errors import ExternalServiceError, InvalidInputError

logger = logging.getLogger(__name__)

# Formatos de imagem aceites (nome PIL -> (extensão, content type))
ALLOWED_IMAGE_FORMATS = {
    "PNG": ("png", "image/png"),
    "JPEG": ("jpg", "image/jpeg"),
    "WEBP": ("webp", "image/webp"),
}

_DATA_URL_RE = re.compile(r'^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.+)$', re.DOTALL)


def inspect_image(content: bytes, max_size_mb: int = STORAGE_MAX_IMAGE_MB) -> Tuple[str, str]:
    """
    Confirma que o conteúdo é uma imagem válida de um formato aceite.
    Devolve (extensão, content_type).
    """
    if not content:
        raise InvalidInputError("Arquivo de imagem vazio")
    if len(content) > max_size_mb * 1024 * 1024:
        raise InvalidInputError(f"Imagem excede o limite de {max_size_mb} MB")

    try:
        with Image.open(io.BytesIO(content)) as img:
            image_format = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise InvalidInputError("Arquivo não é uma imagem válida")

    if image_format not in ALLOWED_IMAGE_FORMATS:
        raise InvalidInputError(f"Formato de imagem não suportado: {image_format}")
    return ALLOWED_IMAGE_FORMATS[image_format]


async def read_upload(upload, max_size_mb: Optional[int] = None) -> bytes:
    """Lê o ficheiro enviado sem passar do limite; rejeita antes de carregar tudo."""
    max_size_mb = max_size_mb or STORAGE_MAX_IMAGE_MB
    max_bytes = max_size_mb * 1024 * 1024
    if upload.size is not None and upload.size > max_bytes:
        raise InvalidInputError(f"Imagem excede o limite de {max_size_mb} MB")

    # O tamanho declarado pode faltar ou mentir
    content = await upload.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise InvalidInputError(f"Imagem excede o limite de {max_size_mb} MB")
    return content


def decode_data_url(data_url: str) -> bytes:
    """Converte o data URL do SignaturePad ('data:image/png;base64,...') em bytes."""
    match = _DATA_URL_RE.match(data_url.strip()) if data_url else None
    if not match:
        raise InvalidInputError("Assinatura em formato inválido")
    try:
        return base64.b64decode(match.group("data"), validate=True)
    except ValueError:
        raise InvalidInputError("Assinatura em formato inválido")


class S3Storage:
    def __init__(self):
        self.s3_client = None
        self.bucket_name = AWS_BUCKET_NAME
        if AWS_ACCESS_KEY and AWS_SECRET_KEY:
            try:
                self.s3_client = boto3.client(
                    's3',
                    aws_access_key_id=AWS_ACCESS_KEY,
                    aws_secret_access_key=AWS_SECRET_KEY,
                    region_name=AWS_REGION,
                    endpoint_url=AWS_ENDPOINT_URL,
                )
                logger.info("Armazenamento S3 inicializado com sucesso.")
            except (BotoCoreError, ValueError) as e:
                logger.error(f"Erro ao ligar ao S3: {e}")
        else:
            logger.warning("Credenciais S3 não encontradas. Upload de arquivos indisponível.")

    def is_configured(self) -> bool:
        return self.s3_client is not None and bool(self.bucket_name)

    def public_url(self, key: str) -> str:
        if STORAGE_PUBLIC_BASE_URL:
            return f"{STORAGE_PUBLIC_BASE_URL}/{key}"
        return f"https://{self.bucket_name}.s3.{AWS_REGION}.amazonaws.com/{key}"

    def _put(self, key: str, content: bytes, content_type: str):
        self.s3_client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=content,
            ContentType=content_type,
        )

    async def upload(self, key: str, content: bytes, content_type: str) -> str:
        """Envia o arquivo e devolve o URL público."""
        if not self.is_configured():
            raise ExternalServiceError("Armazenamento de arquivos não configurado")
        try:
            await asyncio.to_thread(self._put, key, content, content_type)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Erro no upload S3 ({key}): {e}")
            raise ExternalServiceError("Erro ao enviar arquivo")
        logger.info(f"Upload S3: {key} ({len(content)} bytes)")
        return self.public_url(key)

    async def delete(self, key: str) -> bool:
        if not self.is_configured():
            return False
        try:
            await asyncio.to_thread(
                self.s3_client.delete_object, Bucket=self.bucket_name, Key=key
            )
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Erro ao remover {key} do S3: {e}")
            return False


_storage: Optional[S3Storage] = None


def get_storage() -> S3Storage:
    """Dependência FastAPI; instância criada no primeiro uso."""
    global _storage
    if _storage is None:
        _storage = S3Storage()
    return _storage
