"""
Campaign image storage on S3.

Images are stored publicly under S3_UPLOAD_PREFIX with a generated name of
the form {shopPrefix}_{timestamp}_{hash}.{ext}; the public URL is saved on
the campaign.
"""
import logging
import os
import re
import secrets
import time

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app

from ..utils.exceptions import ConfigurationError, ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}


def file_extension(filename: str) -> str:
    return filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''


def allowed_image(filename: str) -> bool:
    return file_extension(filename) in ALLOWED_EXTENSIONS


def generate_unique_filename(original_filename: str, shop: str) -> str:
    """
    Build a collision-resistant upload name.

    shopPrefix is the shop domain with non-alphanumerics removed (10 chars
    max), timestamp the last 6 digits of the epoch in milliseconds and hash
    8 random hex characters.
    """
    ext = file_extension(original_filename)
    timestamp = str(int(time.time() * 1000))[-6:]
    digest = secrets.token_hex(4)
    shop_prefix = re.sub(r'[^a-z0-9]', '', shop, flags=re.IGNORECASE)[:10]
    return f'{shop_prefix}_{timestamp}_{digest}.{ext}'


def validate_image(filename: str, size: int) -> None:
    """
    Raises:
        ValidationError: for a missing file, unsupported type or oversize file
    """
    if not filename:
        raise ValidationError('Campaign image is required', 'image')
    if not allowed_image(filename):
        raise ValidationError(
            f'Image must be one of: {", ".join(sorted(ALLOWED_EXTENSIONS))}', 'image'
        )
    max_size = current_app.config.get('MAX_IMAGE_SIZE', 5 * 1024 * 1024)
    if size > max_size:
        raise ValidationError(f'Image must be smaller than {max_size // (1024 * 1024)}MB', 'image')


class ImageStorage:
    """
    Uploads campaign images to the configured bucket.

    Usage:
        storage = ImageStorage()
        url = storage.upload(data, generate_unique_filename(name, shop), 'image/png')
    """

    def __init__(self, client=None, bucket: str = None, region: str = None, prefix: str = None):
        config = current_app.config
        self.bucket = bucket or config.get('AWS_S3_BUCKET_NAME')
        self.region = region or config.get('AWS_REGION', 'us-east-1')
        self.prefix = (prefix or config.get('S3_UPLOAD_PREFIX', 'puzzle_craft/uploads')).strip('/')
        self._client = client

    @property
    def client(self):
        if self._client is None:
            config = current_app.config
            options = {'region_name': self.region}
            if config.get('AWS_ACCESS_KEY_ID') and config.get('AWS_SECRET_ACCESS_KEY'):
                options['aws_access_key_id'] = config['AWS_ACCESS_KEY_ID']
                options['aws_secret_access_key'] = config['AWS_SECRET_ACCESS_KEY']
            self._client = boto3.client('s3', **options)
        return self._client

    def ensure_configured(self) -> None:
        if not self.bucket:
            raise ConfigurationError('AWS S3 configuration is not properly set up')

    def key_for(self, filename: str) -> str:
        return f'{self.prefix}/{filename}'

    def public_url(self, key: str) -> str:
        return f'https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}'

    def upload(self, data: bytes, filename: str, content_type: str = None) -> str:
        """
        Put one object and return its public URL.

        Raises:
            ConfigurationError: if no bucket is configured
            ExternalServiceError: if S3 rejects the upload
        """
        self.ensure_configured()
        key = self.key_for(os.path.basename(filename))

        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type or 'application/octet-stream',
                ACL='public-read',
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f'S3 upload of {key} failed: {e}')
            raise ExternalServiceError(f'S3 upload failed: {e}', service='s3')

        url = self.public_url(key)
        logger.info(f'Uploaded campaign image to {url}')
        return url
