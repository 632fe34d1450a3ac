from flask import Blueprint, jsonify, current_app

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the live quiz server!'})


@main.route('/api/config')
def client_config():
    # Clients read the re-sync interval from here so it stays server-controlled
    return jsonify({'poll_interval_sec': float(current_app.config.get('POLL_INTERVAL_SEC', 2))})
