"""
Tests for campaign image storage.

Tests cover:
- Upload name generation
- Type and size validation
- S3 upload and public URL
"""
import re
import pytest
from unittest.mock import MagicMock
from botocore.exceptions import ClientError

from puzzlecraft.services.image_storage import (
    ImageStorage, allowed_image, generate_unique_filename, validate_image,
)
from puzzlecraft.utils.exceptions import ConfigurationError, ExternalServiceError, ValidationError


class TestFilenames:
    """Tests for filename helpers."""

    def test_unique_filename_format(self):
        name = generate_unique_filename('My Photo.PNG', 'cool-store.myshopify.com')
        assert re.fullmatch(r'coolstorem_\d{6}_[0-9a-f]{8}\.png', name)

    def test_unique_filenames_differ(self):
        assert generate_unique_filename('a.png', 'shop') != generate_unique_filename('a.png', 'shop')

    def test_allowed_image(self):
        assert allowed_image('photo.webp')
        assert allowed_image('photo.JPEG')
        assert not allowed_image('script.svg')
        assert not allowed_image('noextension')


class TestValidateImage:
    """Tests for validate_image()."""

    def test_accepts_small_png(self, app):
        with app.app_context():
            validate_image('puzzle.png', 1024)

    def test_rejects_type(self, app):
        with app.app_context():
            with pytest.raises(ValidationError):
                validate_image('puzzle.bmp', 1024)

    def test_rejects_oversize(self, app):
        with app.app_context():
            with pytest.raises(ValidationError):
                validate_image('puzzle.png', app.config['MAX_IMAGE_SIZE'] + 1)


class TestImageStorage:
    """Tests for ImageStorage."""

    def test_upload_returns_public_url(self, app):
        s3 = MagicMock()
        with app.app_context():
            storage = ImageStorage(client=s3)
            url = storage.upload(b'png-bytes', 'shop_123456_abcdef12.png', 'image/png')

        assert url == 'https://puzzle-test-bucket.s3.us-east-1.amazonaws.com/puzzle_craft/uploads/shop_123456_abcdef12.png'
        kwargs = s3.put_object.call_args[1]
        assert kwargs['Bucket'] == 'puzzle-test-bucket'
        assert kwargs['Key'] == 'puzzle_craft/uploads/shop_123456_abcdef12.png'
        assert kwargs['ACL'] == 'public-read'
        assert kwargs['ContentType'] == 'image/png'

    def test_missing_bucket(self, app):
        with app.app_context():
            app.config['AWS_S3_BUCKET_NAME'] = ''
            with pytest.raises(ConfigurationError):
                ImageStorage(client=MagicMock()).upload(b'x', 'a.png')

    def test_s3_failure(self, app):
        s3 = MagicMock()
        s3.put_object.side_effect = ClientError({'Error': {'Code': 'AccessDenied', 'Message': 'denied'}}, 'PutObject')
        with app.app_context():
            with pytest.raises(ExternalServiceError):
                ImageStorage(client=s3).upload(b'x', 'a.png', 'image/png')
