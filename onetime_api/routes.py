"""
ONETIME API ROUTES - FLASK BLUEPRINT

Every endpoint works on an engine held in memory, addressed by the id returned
when it was created. One engine = one secret + its HOTP/TOTP settings.

EXAMPLES:
curl -X POST http://localhost:5000/api/engines -H "Content-Type: application/json" -d "{}"
curl -X POST http://localhost:5000/api/engines -H "Content-Type: application/json" \
     -d '{"secret": "GEZD GNBV GY3T QOJQ GEZD GNBV GY3T QOJQ", "time_step": 0}'
curl http://localhost:5000/api/engines/<id>/code
curl -X POST http://localhost:5000/api/engines/<id>/verify -H "Content-Type: application/json" -d '{"code": "755 224"}'
"""

import logging
import secrets
import threading
from contextlib import contextmanager

from flask import Blueprint, abort, current_app, jsonify, request

from onetime.config import SECRET_BYTES
from onetime.errors import ArgumentOutOfRangeError
from onetime.one_time_password import OneTimePassword

logger = logging.getLogger(__name__)

otp_bp = Blueprint('onetime', __name__, url_prefix='/api/engines')

# Order matters: time_step=0 resets the counter, so the counter goes last.
SETTINGS = ('time_step', 'digits', 'algorithm', 'tolerance_prev', 'tolerance_next', 'counter')


class EngineRegistry:
    """
    In-memory engines, each guarded by its own lock.

    Engines are not safe for concurrent use, so every request touching one
    holds that engine's lock; requests on different engines run in parallel.
    """

    def __init__(self, max_engines: int):
        self.max_engines = max_engines
        self._engines: dict[str, tuple[OneTimePassword, threading.Lock]] = {}
        self._lock = threading.Lock()

    def add(self, otp: OneTimePassword) -> str:
        engine_id = secrets.token_urlsafe(12)
        with self._lock:
            if len(self._engines) >= self.max_engines:
                raise ArgumentOutOfRangeError(f"Too many engines (max {self.max_engines}).")
            self._engines[engine_id] = (otp, threading.Lock())
        return engine_id

    def remove(self, engine_id: str) -> bool:
        with self._lock:
            return self._engines.pop(engine_id, None) is not None

    @contextmanager
    def use(self, engine_id: str):
        """Hold the engine's lock for the duration of the block (404 if unknown)."""
        with self._lock:
            entry = self._engines.get(engine_id)
        if entry is None:
            abort(404, description=f"Engine '{engine_id}' not found.")
        otp, lock = entry
        with lock:
            yield otp

    def __len__(self) -> int:
        return len(self._engines)


def _registry() -> EngineRegistry:
    return current_app.extensions['onetime_registry']


def _settings(otp: OneTimePassword) -> dict:
    return {
        "mode": otp.mode,
        "digits": otp.digits,
        "algorithm": otp.algorithm.name,
        "time_step": otp.time_step,
        "counter": otp.counter,
        "tolerance_prev": otp.tolerance_prev,
        "tolerance_next": otp.tolerance_next,
    }


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        abort(400, description="Request body must be a JSON object.")
    return data


def _integer(data: dict, name: str):
    """Return data[name] (None if absent), rejecting anything but a JSON integer."""
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool):
        raise ArgumentOutOfRangeError(f"{name} must be an integer.")
    if name.startswith('tolerance_'):
        limit = current_app.config['MAX_TOLERANCE']
        if value > limit:
            raise ArgumentOutOfRangeError(f"{name} cannot be more than {limit}.")
    return value


def _apply_settings(otp: OneTimePassword, data: dict) -> None:
    for name in SETTINGS:
        if name not in data:
            continue
        value = data[name] if name == 'algorithm' else _integer(data, name)
        setattr(otp, name, value)


@otp_bp.errorhandler(400)
@otp_bp.errorhandler(404)
def client_error(e):
    return jsonify({"error": e.description}), e.code


@otp_bp.route('', methods=['POST'])
def create_engine():
    """
    CREATE AN ENGINE

    Input (JSON body, all optional):
      {
        "secret": "GEZD GNBV ...",   # Base32; random if missing
        "length": 20,                # random secret length in bytes
        "digits": 6, "algorithm": "SHA1", "time_step": 30,
        "counter": 0, "tolerance_prev": 1, "tolerance_next": 0
      }

    Output:
      {"id": "...", "secret": "GEZD GNBV ...", "settings": {...}}
    """
    data = _json_body()
    if data.get('secret'):
        otp = OneTimePassword(data['secret'])
    else:
        length = _integer(data, 'length')
        otp = OneTimePassword.generate(SECRET_BYTES if length is None else length)
    _apply_settings(otp, data)

    engine_id = _registry().add(otp)
    logger.info("Created engine %s (%s)", engine_id, otp.mode)
    return jsonify({
        "id": engine_id,
        "secret": otp.secret_key.export_base32(),
        "settings": _settings(otp),
    }), 201


@otp_bp.route('/<string:engine_id>', methods=['GET'])
def get_engine(engine_id):
    with _registry().use(engine_id) as otp:
        return jsonify(_settings(otp))


@otp_bp.route('/<string:engine_id>', methods=['PATCH'])
def update_engine(engine_id):
    """
    UPDATE SETTINGS

    All or nothing: an invalid value leaves the engine untouched and answers
    400 (409 for setting the counter in TOTP mode).
    """
    data = _json_body()
    with _registry().use(engine_id) as otp:
        # validate everything on a scratch engine first, then copy over
        scratch = OneTimePassword(otp.secret_key)
        scratch.copy_settings_from(otp)
        _apply_settings(scratch, data)
        otp.copy_settings_from(scratch)
        return jsonify(_settings(otp))


@otp_bp.route('/<string:engine_id>', methods=['DELETE'])
def delete_engine(engine_id):
    if not _registry().remove(engine_id):
        abort(404, description=f"Engine '{engine_id}' not found.")
    logger.info("Removed engine %s", engine_id)
    return '', 204


@otp_bp.route('/<string:engine_id>/secret', methods=['GET'])
def export_secret(engine_id):
    """
    EXPORT THE SECRET AS BASE32

      curl "http://localhost:5000/api/engines/<id>/secret?spacing=0&padding=1"
    """
    spacing = request.args.get('spacing', '1') != '0'
    padding = request.args.get('padding', '0') == '1'
    uppercase = request.args.get('uppercase', '1') != '0'
    with _registry().use(engine_id) as otp:
        secret = otp.secret_key.export_base32(spacing=spacing, padding=padding, uppercase=uppercase)
    return jsonify({"secret": secret})


@otp_bp.route('/<string:engine_id>/code', methods=['GET'])
def get_code(engine_id):
    """
    CURRENT CODE (HOTP: consumes the counter)

      curl "http://localhost:5000/api/engines/<id>/code?digits=8"
    """
    digits = request.args.get('digits', type=int)
    with _registry().use(engine_id) as otp:
        code = otp.get_formatted_code(digits)
        return jsonify({
            "code": code,
            "mode": otp.mode,
            "counter": otp.counter,
            "time_left": otp.time_left,
        })


@otp_bp.route('/<string:engine_id>/verify', methods=['POST'])
def verify_code(engine_id):
    """
    VERIFY A CODE

    Input:
      {"code": "755 224", "digits": 6, "tolerance_prev": 1, "tolerance_next": 1}

    Output:
      {"valid": true, "counter": 1}
    """
    data = _json_body()
    if "code" not in data:
        return jsonify({"error": "Code is required"}), 400
    if not isinstance(data["code"], (int, str)) or isinstance(data["code"], bool):
        return jsonify({"error": "Code must be a string or a number"}), 400

    with _registry().use(engine_id) as otp:
        valid = otp.is_code_valid(
            data["code"],
            digits=_integer(data, 'digits'),
            tolerance_prev=_integer(data, 'tolerance_prev'),
            tolerance_next=_integer(data, 'tolerance_next'),
        )
        return jsonify({"valid": valid, "counter": otp.counter})
