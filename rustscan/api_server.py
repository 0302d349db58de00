#!/usr/bin/env python3
"""
Rust Detection API Server
Upload an image, add seed points, rescan, download the annotated result.
"""

import os
import math
import logging
import uuid
import base64
from io import BytesIO
from collections import OrderedDict
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .models.analysis_result import AnalysisResult
from .models.errors import SegmentationError
from .models.image_buffer import ImageBuffer
from .models.seed_point import SeedPoint
from .services.image_service import ImageService
from .services.overlay_service import DOWNLOAD_NAME, OverlayService
from .services.segmentation_service import SegmentationService

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "32"))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25")) * 1024 * 1024

app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

# Initialize services
image_service = ImageService()
segmentation_service = SegmentationService()
overlay_service = OverlayService()

logger = logging.getLogger(__name__)

# Session storage for analysis state, oldest first
sessions: "OrderedDict[str, AnalysisSession]" = OrderedDict()


class AnalysisSession:
    """Holds one user's image, accumulated seed points and latest result."""

    def __init__(self, session_id: str, image: ImageBuffer):
        self.session_id = session_id
        self.image = image
        self.points: List[SeedPoint] = []
        self.result: Optional[AnalysisResult] = None

    def clear(self):
        """Release the image and its cached base mask."""
        segmentation_service.forget(self.image)
        self.points.clear()
        self.result = None


class ApiError(Exception):
    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


@app.errorhandler(ApiError)
def handle_api_error(err: ApiError):
    return jsonify({'success': False, 'message': err.message}), err.status


@app.errorhandler(SegmentationError)
def handle_segmentation_error(err: SegmentationError):
    return jsonify({'success': False, 'message': str(err)}), 400


@app.errorhandler(Exception)
def handle_unexpected_error(err: Exception):
    if isinstance(err, HTTPException):
        return jsonify({'success': False, 'message': err.description}), err.code
    logger.exception(f"Unhandled error: {err}")
    return jsonify({'success': False, 'message': 'Internal server error'}), 500


def allowed_file(filename: str) -> bool:
    """Same extension list as batch loading (VALID_IMAGE_EXTENSIONS)."""
    return image_service.is_supported(filename)


def store_session(session: AnalysisSession) -> None:
    """Register a session, evicting the oldest ones beyond MAX_SESSIONS."""
    sessions[session.session_id] = session
    while len(sessions) > MAX_SESSIONS:
        _, evicted = sessions.popitem(last=False)
        evicted.clear()
        logger.info(f"Evicted session {evicted.session_id}")


def get_session(session_id: Optional[str]) -> AnalysisSession:
    if not session_id:
        raise ApiError('Missing session_id')
    if session_id not in sessions:
        raise ApiError('Unknown session', 404)
    sessions.move_to_end(session_id)
    return sessions[session_id]


def json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ApiError('Expected a JSON object body')
    return body


def result_payload(session: AnalysisSession) -> dict:
    """Mask bytes are base64 so the response stays compact."""
    result = session.result
    return {
        'success': True,
        'session_id': session.session_id,
        'width': result.width,
        'height': result.height,
        'mask': base64.b64encode(result.mask.tobytes()).decode('utf-8'),
        'rust_pixels': result.rust_pixels,
        'coverage': result.coverage,
        'points': [{'x': p.x, 'y': p.y} for p in session.points],
        'overlay': overlay_service.to_data_url(overlay_service.compose(session.image, result)),
    }


def read_uploaded_image() -> ImageBuffer:
    try:
        if 'image' in request.files:
            file = request.files['image']
            if file.filename == '':
                raise ApiError('No file selected')
            if not allowed_file(file.filename):
                raise ApiError(f'Unsupported file type: {file.filename}')
            return image_service.decode_upload(file.read())

        body = request.get_json(silent=True) or {}
        if isinstance(body, dict) and isinstance(body.get('image'), str):
            return image_service.decode_upload(body['image'])
    except ValueError as err:
        raise ApiError(f'Could not decode image: {err}')

    raise ApiError('No image provided')


@app.route('/api/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok', 'sessions': len(sessions)})


@app.route('/api/analyze', methods=['POST'])
def analyze():
    """Decode the upload, run the base scan and open a session."""
    image = read_uploaded_image()
    session = AnalysisSession(str(uuid.uuid4()), image)
    session.result = segmentation_service.detect_rust(image)
    store_session(session)

    logger.info(f"Session {session.session_id}: {image.width}x{image.height}, "
                f"{session.result.rust_pixels} rust pixels")
    return jsonify(result_payload(session))


@app.route('/api/points', methods=['POST'])
def add_point():
    """Record a seed point; takes effect on the next rescan."""
    body = json_body()
    session = get_session(body.get('session_id'))
    try:
        point = SeedPoint.coerce(body)
    except (KeyError, TypeError, ValueError):
        raise ApiError('Expected numeric x and y')
    if not (math.isfinite(point.x) and math.isfinite(point.y)):
        raise ApiError('Point coordinates must be finite')

    session.points.append(point)
    return jsonify({
        'success': True,
        'session_id': session.session_id,
        'points': [{'x': p.x, 'y': p.y} for p in session.points],
    })


@app.route('/api/clear-points', methods=['POST'])
def clear_points():
    session = get_session(json_body().get('session_id'))
    session.points.clear()
    session.result = segmentation_service.detect_rust(session.image)
    return jsonify(result_payload(session))


@app.route('/api/rescan', methods=['POST'])
def rescan():
    """Refine the base scan around every point collected so far."""
    body = json_body()
    session = get_session(body.get('session_id'))
    radius = body.get('radius')
    if radius is not None and (
        isinstance(radius, bool)
        or not isinstance(radius, (int, float))
        or not math.isfinite(radius)
        or radius < 0
    ):
        raise ApiError('radius must be a finite, non-negative number')

    session.result = segmentation_service.detect_rust(session.image, session.points, radius=radius)
    logger.info(f"Session {session.session_id}: rescan with {len(session.points)} points, "
                f"{session.result.rust_pixels} rust pixels")
    return jsonify(result_payload(session))


@app.route('/api/overlay/<session_id>', methods=['GET'])
def download_overlay(session_id: str):
    session = get_session(session_id)
    show_overlay = request.args.get('overlay', '1') not in ('0', 'false', 'no')
    pixels = overlay_service.compose(session.image, session.result, show_overlay=show_overlay)
    return send_file(BytesIO(overlay_service.to_png_bytes(pixels)), mimetype='image/png',
                     as_attachment=True, download_name=DOWNLOAD_NAME)


@app.route('/api/mask/<session_id>', methods=['GET'])
def download_mask(session_id: str):
    session = get_session(session_id)
    pixels = overlay_service.mask_to_pixels(session.result)
    return send_file(BytesIO(overlay_service.to_png_bytes(pixels)), mimetype='image/png',
                     as_attachment=True, download_name='rust_mask.png')


@app.route('/api/session/<session_id>', methods=['DELETE'])
def delete_session(session_id: str):
    session = get_session(session_id)
    session.clear()
    del sessions[session_id]
    return jsonify({'success': True, 'session_id': session_id})


def main():
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )
    host = os.getenv("API_HOST", "127.0.0.1")
    port = int(os.getenv("API_PORT", "5000"))
    logger.info(f"Starting rust detection API on {host}:{port}")
    app.run(host=host, port=port, debug=False)


if __name__ == '__main__':
    main()
