"""
Game Submission Intake for Puzzle Craft.

The storefront widget posts play results either as JSON or as a URL-encoded
form. decode_submission() turns either wire format into one typed
GameSubmission before any business logic runs; every coercion problem is
reported as a single ValidationError.

GameSubmissionIntake.submit() then applies the server-side rules (tier from
score, completion implies completed, reward code from the registry) and
appends one GameData record.
"""
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qsl

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import database as default_database
from ..models.game_data import GameData
from ..utils.coercion import parse_bool
from ..utils.exceptions import StorageError, ValidationError
from .tier_engine import tier_for_score

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('shop', 'campaignName', 'playerEmail', 'score')

# Largest value the game_data integer columns hold
MAX_INT = 2 ** 31 - 1


@dataclass
class JsonPayload:
    data: Dict[str, Any]


@dataclass
class FormPayload:
    data: Dict[str, str]


RawPayload = Union[JsonPayload, FormPayload]


@dataclass
class GameSubmission:
    """Normalized play result. None means the field was not sent."""
    shop: Optional[str] = None
    campaign_name: Optional[str] = None
    player_email: Optional[str] = None
    score: Optional[int] = None
    completion_percentage: int = 0
    time_used: int = 0
    total_time: int = 0
    puzzle_pieces: int = 4
    completed: bool = False
    discount_code: Optional[str] = None
    discount_tier: Optional[str] = None
    discount_percentage: int = 0
    session_id: Optional[str] = None
    is_early_submission: bool = False
    image_loaded: bool = True
    all_logs: List[Any] = field(default_factory=list)


# wire name -> (attribute, kind)
WIRE_FIELDS = {
    'shop': ('shop', 'shop'),
    'campaignName': ('campaign_name', 'str'),
    'playerEmail': ('player_email', 'str'),
    'score': ('score', 'int'),
    'completionPercentage': ('completion_percentage', 'int'),
    'timeUsed': ('time_used', 'int'),
    'totalTime': ('total_time', 'int'),
    'puzzlePieces': ('puzzle_pieces', 'int'),
    'completed': ('completed', 'bool'),
    'discountCode': ('discount_code', 'str'),
    'discountTier': ('discount_tier', 'str'),
    'discountPercentage': ('discount_percentage', 'int'),
    'sessionId': ('session_id', 'str'),
    'isEarlySubmission': ('is_early_submission', 'bool'),
    'imageLoaded': ('image_loaded', 'bool'),
    'allLogs': ('all_logs', 'logs'),
}


def normalize_shop(value: str) -> str:
    """Strip protocol and trailing slash from a shop domain."""
    shop = value.strip().lower()
    for prefix in ('https://', 'http://'):
        if shop.startswith(prefix):
            shop = shop[len(prefix):]
    return shop.rstrip('/')


def _coerce_int(value) -> int:
    if isinstance(value, bool):
        raise ValueError('boolean is not a number')
    return int(float(value))


def _coerce_logs(value) -> list:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            logger.debug('Ignoring unparsable allLogs payload')
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def _coerce(kind: str, value):
    if kind == 'int':
        return _coerce_int(value)
    if kind == 'bool':
        return parse_bool(value)
    if kind == 'logs':
        return _coerce_logs(value)
    if kind == 'shop':
        return normalize_shop(str(value))
    return str(value).strip()


def parse_payload(body: bytes, content_type: str = None) -> RawPayload:
    """
    Identify the wire format of a submission body.

    Bodies declared as form data are parsed as forms; anything else is tried
    as JSON first and falls back to form parsing.
    """
    text = (body or b'').decode('utf-8', errors='replace')
    content_type = (content_type or '').lower()

    if 'application/x-www-form-urlencoded' in content_type:
        return FormPayload(dict(parse_qsl(text, keep_blank_values=True)))

    try:
        data = json.loads(text)
    except ValueError:
        if 'application/json' in content_type:
            raise ValidationError('Request body is not valid JSON')
        return FormPayload(dict(parse_qsl(text, keep_blank_values=True)))

    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return JsonPayload(data)


def normalize_payload(payload: RawPayload) -> GameSubmission:
    """Coerce a raw payload into a GameSubmission."""
    submission = GameSubmission()
    invalid = []

    for wire_name, (attr, kind) in WIRE_FIELDS.items():
        value = payload.data.get(wire_name)
        if value is None or value == '':
            continue
        try:
            setattr(submission, attr, _coerce(kind, value))
        except (TypeError, ValueError, OverflowError):
            invalid.append(wire_name)

    if invalid:
        raise ValidationError(f'Invalid values for fields: {", ".join(invalid)}', invalid[0])

    return submission


def decode_submission(body: bytes, content_type: str = None) -> GameSubmission:
    """Decode a JSON or URL-encoded submission body."""
    return normalize_payload(parse_payload(body, content_type))


def validate_submission(submission: GameSubmission) -> None:
    """
    Check required fields and ranges.

    Raises:
        ValidationError: listing every missing required field, or naming the
            first out-of-range field
    """
    missing = [
        wire_name for wire_name in REQUIRED_FIELDS
        if getattr(submission, WIRE_FIELDS[wire_name][0]) in (None, '')
    ]
    if missing:
        raise ValidationError(f'Missing required fields: {", ".join(missing)}', 'missing')

    checks = (
        ('score', 0 <= submission.score <= MAX_INT, f'score must be between 0 and {MAX_INT}'),
        ('completionPercentage', 0 <= submission.completion_percentage <= 100,
         'completionPercentage must be between 0 and 100'),
        ('timeUsed', 0 <= submission.time_used <= MAX_INT, f'timeUsed must be between 0 and {MAX_INT}'),
        ('totalTime', 0 <= submission.total_time <= MAX_INT, f'totalTime must be between 0 and {MAX_INT}'),
        ('puzzlePieces', 1 <= submission.puzzle_pieces <= MAX_INT,
         f'puzzlePieces must be between 1 and {MAX_INT}'),
        ('discountPercentage', 0 <= submission.discount_percentage <= 100,
         'discountPercentage must be between 0 and 100'),
    )
    for field_name, ok, message in checks:
        if not ok:
            raise ValidationError(message, field_name)


class GameSubmissionIntake:
    """
    Records play sessions.

    Usage:
        intake = GameSubmissionIntake(registry)
        record = intake.submit(decode_submission(request.get_data(), request.content_type))
    """

    def __init__(self, registry=None, database=None):
        self.registry = registry
        self.database = database or default_database

    def assign_reward(self, submission: GameSubmission, tier: str):
        """
        Pick the code and percentage for a tier.

        Uses the best live registry code at or below the tier. Without a
        registry the values sent by the widget (taken from the published
        code list) are kept.
        """
        if self.registry is None:
            return submission.discount_code, submission.discount_percentage

        code = self.registry.live_code_for_tier(submission.shop, tier)
        if code:
            return code.code, code.percentage

        logger.info(f'No live discount code for tier {tier} at {submission.shop}')
        return None, 0

    def submit(self, submission: GameSubmission, user_agent: str = '', ip_address: str = 'unknown') -> GameData:
        """Validate and append one play record."""
        validate_submission(submission)

        tier = tier_for_score(submission.score)
        completed = submission.completed or submission.completion_percentage == 100
        discount_code, discount_percentage = self.assign_reward(submission, tier.tier)

        if submission.discount_tier and submission.discount_tier != tier.tier:
            logger.info(
                f'Overriding client tier {submission.discount_tier} with {tier.tier} '
                f'for score {submission.score}'
            )

        record = GameData(
            shop=submission.shop,
            campaign_name=submission.campaign_name,
            player_email=submission.player_email,
            score=submission.score,
            completion_percentage=submission.completion_percentage,
            time_used=submission.time_used,
            total_time=submission.total_time,
            puzzle_pieces=submission.puzzle_pieces,
            completed=completed,
            discount_code=discount_code,
            discount_tier=tier.tier,
            discount_percentage=discount_percentage,
            session_id=submission.session_id or uuid.uuid4().hex,
            is_early_submission=submission.is_early_submission,
            image_loaded=submission.image_loaded,
            user_agent=(user_agent or '')[:512],
            ip_address=ip_address or 'unknown',
            all_logs=submission.all_logs,
        )

        try:
            self.database.session.add(record)
            self.database.commit()
        except SQLAlchemyError as e:
            self.database.handle_error(e)
            logger.error(f'Failed to save game data for {submission.shop}: {e}')
            raise StorageError('Failed to save game data', original_error=e)

        logger.info(
            f'Saved game {record.id} for {record.shop}: score={record.score} tier={record.discount_tier}'
        )
        return record
