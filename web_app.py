"""
GEMRECALL — HTTP Driver

Thin Flask JSON layer over one RoundStateMachine (and its TicketEconomy).
Single session, single-threaded; pacing (pattern display, countdown) is the
client's job: it calls /display and /input when its own timers fire.

Usage:
    python web_app.py
    curl -X POST localhost:5000/api/session/start
    curl -X POST localhost:5000/api/session/submit -d '{"gem": "EMERALD"}' \\
         -H 'Content-Type: application/json'
"""
import logging
from typing import Optional

from flask import Flask, jsonify, request

from config.settings import EngineSettings, configure_logging
from config.ticket_config import TicketConfig, default_ticket_config
from game_engine import new_game_session
from game_engine.types import parse_gemstone

logger = logging.getLogger("gemrecall.api")


def create_app(ticket_config: Optional[TicketConfig] = None, seed: Optional[int] = None,
               with_economy: bool = True) -> Flask:
    app = Flask(__name__)
    if with_economy and ticket_config is None:
        ticket_config = default_ticket_config()
    machine = new_game_session(
        seed=seed,
        ticket_config=ticket_config if with_economy else None,
        with_economy=with_economy,
    )
    if machine.economy is not None and EngineSettings.DIFFICULTY:
        machine.economy.set_difficulty(EngineSettings.DIFFICULTY)
    app.config["MACHINE"] = machine

    def _result(ok: bool):
        return jsonify({"ok": ok, "session": machine.snapshot()})

    def _economy_or_404():
        if machine.economy is None:
            return None, (jsonify({"error": "No economy attached"}), 404)
        return machine.economy, None

    # ── Session ──

    @app.route("/api/session")
    def api_session():
        return jsonify({"session": machine.snapshot()})

    @app.route("/api/session/start", methods=["POST"])
    def api_session_start():
        return _result(machine.start_round())

    @app.route("/api/session/continue", methods=["POST"])
    def api_session_continue():
        return _result(machine.continue_to_next_round())

    @app.route("/api/session/display", methods=["POST"])
    def api_session_display():
        return _result(machine.start_pattern_display())

    @app.route("/api/session/input", methods=["POST"])
    def api_session_input():
        return _result(machine.start_player_input())

    @app.route("/api/session/submit", methods=["POST"])
    def api_session_submit():
        data = request.get_json(silent=True) or {}
        if "gem" not in data:
            return jsonify({"error": "gem required"}), 400
        try:
            gem = parse_gemstone(data["gem"])
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        return _result(machine.submit_input(gem))

    @app.route("/api/session/reset", methods=["POST"])
    def api_session_reset():
        machine.reset_session()
        return _result(True)

    @app.route("/api/session/effects")
    def api_session_effects():
        return jsonify(machine.current_effects().to_dict())

    # ── Economy ──

    @app.route("/api/economy")
    def api_economy():
        economy, err = _economy_or_404()
        if err:
            return err
        payload = economy.stats().to_dict()
        payload["formatted_balance"] = economy.formatted_balance()
        payload["game_cost"] = economy.game_cost
        payload["next_round_reward"] = machine.next_round_reward()
        return jsonify(payload)

    @app.route("/api/economy/difficulty", methods=["POST"])
    def api_economy_difficulty():
        economy, err = _economy_or_404()
        if err:
            return err
        data = request.get_json(silent=True) or {}
        difficulty = data.get("difficulty")
        if not difficulty or not economy.set_difficulty(difficulty):
            return jsonify({
                "error": f"Unknown difficulty: {difficulty}",
                "available": sorted(economy.config.difficulty_settings),
            }), 400
        return jsonify({"ok": True, "difficulty": economy.current_difficulty})

    @app.route("/api/economy/reset", methods=["POST"])
    def api_economy_reset():
        economy, err = _economy_or_404()
        if err:
            return err
        economy.reset()
        machine.reset_session()
        return _result(True)

    logger.info("Session API ready (economy=%s, seed=%s)", machine.economy is not None, seed)
    return app


app = create_app(seed=EngineSettings.SEED)


if __name__ == "__main__":
    configure_logging()
    app.run(host=EngineSettings.API_HOST, port=EngineSettings.API_PORT)
