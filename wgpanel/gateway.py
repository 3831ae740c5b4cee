import io
import json
import logging
import os
import sys

import qrcode
from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from . import keys
from .config import WG_DEFAULT_PORT, WG_DEFAULT_POST_DOWN, WG_DEFAULT_POST_UP
from .datastore import DataStore
from .errors import ConfigurationError, NotFoundError, ValidationError, WgPanelError
from .interface import InterfaceController, InterfaceMonitor
from .models import ClientPatch, ClientRecord, ServerPatch, parse_uuid
from .reconciler import reconcile
from .renderer import render_client_config, render_server_config
from .settings import load_settings

_log = logging.getLogger("wgpanel.gateway")


def _body():
    if not request.data:
        raise ValidationError("Request body must be JSON")
    try:
        return json.loads(request.data)
    except ValueError:
        raise ValidationError("Request body must be valid JSON")


def _error(code, message):
    return jsonify(error={"code": code, "message": message}), code


def _generate_qr(config_text):
    qr = qrcode.QRCode(box_size=8, border=2)
    qr.add_data(config_text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _sample():
    client_key = keys.generate_private_key()
    return {
        "server": {
            "endpoint": "endpoint.com:51820",
            "address": ["10.8.0.1/24"],
            "dns": ["1.1.1.1"],
            "listen_port": WG_DEFAULT_PORT,
            "private_key": keys.generate_private_key(),
            "pre_up": None,
            "post_up": WG_DEFAULT_POST_UP,
            "pre_down": None,
            "post_down": WG_DEFAULT_POST_DOWN,
            "table": None,
            "mtu": None,
        },
        "clients": [{
            "name": "Sample Client",
            "uuid": None,
            "enabled": True,
            "generate_preshared_key": True,
            "preshared_key": None,
            "server_allowed_ips": ["10.8.0.2/32"],
            "persistent_keep_alive": None,
            "private_key": client_key,
            "address": "10.8.0.2/32",
            "client_allowed_ips": ["0.0.0.0/0"],
            "dns": [],
        }],
    }


def create_app(store, settings, controller, monitor):
    app = Flask(__name__)

    def render():
        server = store.get_server()
        network = settings.network_interface_name() if server is not None else ""
        return render_server_config(
            server, store.list_clients(), settings.wireguard_interface, network)

    def client_config(client_uuid):
        with store.lock:
            client = store.get_client(client_uuid)
            server = store.get_server()
        if server is None:
            raise NotFoundError("WireGuard server is not configured")
        return client, render_client_config(client, server.public_key, server.endpoint)

    @app.errorhandler(WgPanelError)
    def handle_engine_error(e):
        if e.status >= 500:
            _log.error("%s: %s", type(e).__name__, e.message)
        return _error(e.status, e.message)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return _error(e.code, e.description)

    @app.route("/wireguard/server", methods=["GET"])
    def get_server():
        server = store.get_server()
        return jsonify(server.to_dict() if server else None)

    @app.route("/wireguard/server", methods=["PUT"])
    def put_server():
        data = _body()
        patch = ServerPatch.from_dict(data) if data is not None else None
        server = store.upsert_server(patch)
        return jsonify(server.to_dict() if server else None)

    @app.route("/wireguard/server", methods=["DELETE"])
    def delete_server():
        store.delete_server()
        return "", 200

    @app.route("/wireguard/clients", methods=["GET"])
    def get_clients():
        return jsonify([c.to_dict() for c in store.list_clients()])

    @app.route("/wireguard/clients", methods=["PUT"])
    def put_clients():
        data = _body()
        if not isinstance(data, list):
            raise ValidationError("Request body must be a list of clients")
        store.replace_clients([ClientRecord.from_dict(c) for c in data])
        return "", 200

    @app.route("/wireguard/clients", methods=["POST"])
    def post_clients():
        client = store.create_client(ClientPatch.from_dict(_body()))
        return jsonify(client.to_dict())

    @app.route("/wireguard/clients/<client_id>", methods=["GET"])
    def get_client(client_id):
        return jsonify(store.get_client(parse_uuid(client_id)).to_dict())

    @app.route("/wireguard/clients/<client_id>", methods=["PUT"])
    def put_client(client_id):
        client_uuid = parse_uuid(client_id)
        store.update_client(client_uuid, ClientRecord.from_dict(_body(), default_uuid=client_uuid))
        return "", 200

    @app.route("/wireguard/clients/<client_id>", methods=["DELETE"])
    def delete_client(client_id):
        store.delete_client(parse_uuid(client_id))
        return "", 200

    @app.route("/wireguard/clients/<client_id>/config")
    def get_client_config(client_id):
        client, text = client_config(parse_uuid(client_id))
        return Response(text, mimetype="text/plain",
                        headers={"Content-Disposition":
                                 f"attachment; filename={client.uuid.hex}.conf"})

    @app.route("/wireguard/clients/<client_id>/qr")
    def get_client_qr(client_id):
        _, text = client_config(parse_uuid(client_id))
        return Response(_generate_qr(text), mimetype="image/png")

    @app.route("/wireguard/peers")
    def get_peers():
        with store.lock:
            snapshot = monitor.snapshot()
            peers = reconcile(snapshot, store.list_clients())
        return jsonify([p.to_dict() for p in peers])

    @app.route("/wireguard/restart", methods=["POST"])
    def wireguard_restart():
        with store.lock:
            controller.restart(render())
        return "", 200

    @app.route("/wireguard/reload", methods=["POST"])
    def wireguard_reload():
        with store.lock:
            controller.reload(render())
        return "", 200

    @app.route("/wireguard/start", methods=["POST"])
    def wireguard_start():
        with store.lock:
            controller.start()
        return "", 200

    @app.route("/wireguard/stop", methods=["POST"])
    def wireguard_stop():
        with store.lock:
            controller.stop()
        return "", 200

    @app.route("/wireguard/status")
    def wireguard_status():
        with store.lock:
            return jsonify(
                interface=settings.wireguard_interface,
                config_path=settings.wireguard_config_path,
                server=store.get_server() is not None,
                clients=len(store.list_clients()),
                dirty=store.dirty,
            )

    @app.route("/sample")
    def sample():
        return jsonify(_sample())

    return app


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s", force=True)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    if hasattr(os, "geteuid") and os.geteuid() != 0:
        _log.error("wgpanel must be run as root")
        sys.exit(1)

    try:
        _log.info("reading settings")
        settings = load_settings()
        settings.check_wireguard_interface()
        _log.info("reading dataset")
        store = DataStore.open(settings)
        host, port = settings.listen_host_port()
    except ConfigurationError as e:
        _log.error("configuration error: %s", e.message)
        sys.exit(1)
    except WgPanelError as e:
        _log.error("startup failed: %s", e.message)
        sys.exit(1)

    controller = InterfaceController(settings.wireguard_interface, settings.wireguard_config_path)
    monitor = InterfaceMonitor(settings.wireguard_interface)
    app = create_app(store, settings, controller, monitor)
    _log.info("serving on %s:%d", host, port)
    app.run(host=host, port=port)


if __name__ == "__main__":
    main()
