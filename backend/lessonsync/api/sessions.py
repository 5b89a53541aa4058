from flask import Blueprint, current_app, jsonify, request
from lessonsync import db
from lessonsync.models import SessionCode, generate_session_code

sessions = Blueprint('sessions', __name__)


@sessions.route('/generate', methods=['POST'])
def generate():
    """
    Creates a session code for a teacher, replacing any previous one.
    """
    data = request.get_json(silent=True) or {}
    teacher_id = data.get('teacherId')
    if not teacher_id:
        return jsonify({'error': 'Missing teacherId'}), 400
    teacher_id = str(teacher_id)

    code = data.get('code')
    if code is not None:
        if not isinstance(code, str) or not code.strip():
            return jsonify({'error': 'code must be a non-empty string'}), 400
        code = code.strip()
        existing = SessionCode.query.filter_by(code=code).first()
        if existing and existing.teacher_id != teacher_id:
            return jsonify({'error': 'Session code already in use'}), 400

    # One active session per teacher
    SessionCode.query.filter_by(teacher_id=teacher_id).delete()
    db.session.flush()

    if not code:
        code = generate_session_code(current_app.config.get('SESSION_CODE_LENGTH', 6))
    record = SessionCode(code=code, teacher_id=teacher_id)
    db.session.add(record)
    db.session.commit()
    current_app.logger.info(f"[code-generate] teacher={teacher_id} session={code}")

    return jsonify({'message': 'Session code created', 'session': record.to_dict()}), 201


@sessions.route('/validate/<string:code>', methods=['GET'])
def validate(code):
    """
    Lets a student check a code before opening a socket.
    """
    record = SessionCode.query.filter_by(code=code).first()
    if not record:
        return jsonify({'error': 'Session code not found'}), 404
    return jsonify({'valid': True, 'teacher': record.teacher_id}), 200


@sessions.route('/<string:code>/state', methods=['GET'])
def state(code):
    coordinator = current_app.extensions['lessonsync']
    return jsonify(coordinator.snapshot(code)), 200
