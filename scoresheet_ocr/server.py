"""
HTTP adapter for the scoresheet pipeline.

Start it with the `scoresheet-ocr-server` console script or with
`python -m scoresheet_ocr.server`. PORT picks the listening port (8080).
"""

import logging
import os

from flask import Flask, jsonify, request
from flask_cors import CORS

from .errors import ImageLoadError, ScoresheetError
from .scoresheet_pipeline import ScoresheetPipeline, load_image
from .transcript import PgnMetadata

log = logging.getLogger(__name__)

app = Flask(__name__)

CORS(app, resources={
    r"/*": {
        "origins": os.environ.get("SCORESHEET_CORS_ORIGINS", "http://localhost:*,http://127.0.0.1:*").split(","),
        "methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization"]
    }
})

_pipe = None


def get_pipeline():
    global _pipe
    if _pipe is None:
        _pipe = ScoresheetPipeline()
    return _pipe


def set_pipeline(pipeline):
    global _pipe
    _pipe = pipeline


def _flag(name, default):
    return request.form.get(name, str(default)).lower() == 'true'


def _uploaded_image():
    if 'image' not in request.files:
        return None, (jsonify({'error': 'no image'}), 400)
    f = request.files['image']
    if f.filename == '':
        return None, (jsonify({'error': 'empty filename'}), 400)
    try:
        return load_image(f.read()), None
    except ImageLoadError as e:
        return None, (jsonify({'error': str(e)}), 400)


def _columns():
    try:
        columns = int(request.form.get('columns', 6))
    except ValueError:
        columns = 0
    return columns if columns > 0 else None


def move_stats(verdicts):
    tot = 0
    val_cnt = 0
    for pair in verdicts:
        if not (pair.white or pair.black):
            continue
        tot += 1
        if (pair.white and pair.white.valid) or (pair.black and pair.black.valid):
            val_cnt += 1
    acc = (val_cnt / tot) * 100 if tot > 0 else 0
    return {
        'total_moves': tot,
        'valid_moves': val_cnt,
        'invalid_moves': tot - val_cnt,
        'accuracy_pct': round(acc, 1),
    }


@app.route('/ocr', methods=['POST'])
def process():
    img, err = _uploaded_image()
    if err:
        return err
    columns = _columns()
    if columns is None:
        return jsonify({'error': 'columns must be a positive integer'}), 400
    mode = request.form.get('mode', 'columns')
    if mode not in ('columns', 'whole'):
        return jsonify({'error': f'unknown mode: {mode}'}), 400

    metadata = PgnMetadata(
        white=request.form.get('white') or None,
        black=request.form.get('black') or None,
        round=request.form.get('round') or None,
    )

    try:
        res = get_pipeline().process(
            img,
            language=request.form.get('language') or None,
            expected_columns=columns,
            mode=mode,
            auto_crop=_flag('auto_crop', True),
            metadata=metadata,
        )
    except (ScoresheetError, ValueError, NotImplementedError) as e:
        log.error("pipeline failed: %s", e)
        return jsonify({'error': str(e)}), 500

    resp = {
        'pgn': res.pgn,
        'moves_validation': [p.to_dict() for p in res.verdicts],
        'white_moves': res.white_moves,
        'black_moves': res.black_moves,
        'column_boundaries': res.segmentation.column_boundaries,
        'table': res.segmentation.table_region.to_dict(),
    }
    resp.update(move_stats(res.verdicts))
    log.info("acc: %.1f%% (%d/%d)", resp['accuracy_pct'], resp['valid_moves'], resp['total_moves'])
    return jsonify(resp)


@app.route('/split-columns', methods=['POST'])
def split_columns():
    img, err = _uploaded_image()
    if err:
        return err
    columns = _columns()
    if columns is None:
        return jsonify({'error': 'columns must be a positive integer'}), 400

    pipe = get_pipeline()
    try:
        segmentation = pipe.segment(img, columns, auto_crop=_flag('auto_crop', True))
    except ScoresheetError as e:
        return jsonify({'error': str(e)}), 500
    return jsonify(pipe.describe_columns(segmentation, img.shape[0]))


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    port = int(os.environ.get("PORT", 8080))
    log.info("Start server :%d", port)
    app.run(host='0.0.0.0', port=port)


if __name__ == '__main__':
    main()
