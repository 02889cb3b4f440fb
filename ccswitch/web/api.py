from flask import Flask, jsonify, request
from ccswitch.activation import ActivationError
from ccswitch.profiles import ActiveProfileError, ProfileIndexError, mask_token, validate_fields


def _public(p):
    d = p.to_dict()
    d["token"] = mask_token(p.token)
    return d


def create_app(store):
    app = Flask(__name__)

    @app.errorhandler(ProfileIndexError)
    def not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(ActiveProfileError)
    def conflict(e):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(ValueError)
    def bad_request(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(ActivationError)
    @app.errorhandler(OSError)
    def failed(e):
        return jsonify({"error": str(e)}), 500

    @app.route('/')
    def home():
        return jsonify({"message": "ccswitch API is running", "profiles": len(store)})

    @app.route('/profiles', methods=['GET'])
    def list_route():
        return jsonify([_public(p) for p in store.profiles()])

    @app.route('/profiles/active', methods=['GET'])
    def active_route():
        p = store.get_active()
        return jsonify(_public(p) if p else None)

    @app.route('/profiles', methods=['POST'])
    def add_route():
        data = request.get_json(silent=True) or {}
        name, base_url, token = data.get('name', ''), data.get('base_url', ''), data.get('token', '')
        validate_fields(name, base_url, token)
        return jsonify(_public(store.add(name, base_url, token))), 201

    @app.route('/profiles/<profile_id>', methods=['PUT'])
    def edit_route(profile_id):
        data = request.get_json(silent=True) or {}
        with store.locked():
            current = store.get_id(profile_id)
            name = data.get('name', current.name)
            base_url = data.get('base_url', current.base_url)
            token = data.get('token', current.token)
            validate_fields(name, base_url, token)
            p = store.edit_id(profile_id, name, base_url, token)
        return jsonify(_public(p))

    @app.route('/profiles/<profile_id>/activate', methods=['POST'])
    def activate_route(profile_id):
        p = store.switch_id(profile_id)
        return jsonify({"profile": _public(p), "message": store.activator.describe()})

    @app.route('/profiles/<profile_id>', methods=['DELETE'])
    def delete_route(profile_id):
        store.delete_id(profile_id)
        return '', 204

    return app
