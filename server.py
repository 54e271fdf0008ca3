import os
import sys
import traceback
from dataclasses import dataclass
from flask import Flask, request, jsonify

from ll1_parser import (
    EngineTrace,
    Grammar,
    GrammarError,
    InvalidGrammarPayloadError,
    LL1Analyzer,
    parse_grammar_text,
)
from visualization import VisualizationGenerator


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        print(f"--- WARNING: {name}={value!r} is not an integer, using {default} ---", file=sys.stderr)
        return default


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class ServerConfig:
    """Configuration options for the LL(1) analysis server."""
    host: str = "127.0.0.1"
    port: int = 3002
    cors_origin: str = "*"
    max_content_length: int = 1024 * 1024
    verbose: bool = True
    trace_by_default: bool = False

    @classmethod
    def from_env(cls) -> 'ServerConfig':
        """Read the configuration from ``LL1_*`` environment variables."""
        defaults = cls()
        return cls(
            host=os.environ.get('LL1_HOST', defaults.host),
            port=_env_int('LL1_PORT', defaults.port),
            cors_origin=os.environ.get('LL1_CORS_ORIGIN', defaults.cors_origin),
            max_content_length=_env_int('LL1_MAX_CONTENT_LENGTH', defaults.max_content_length),
            verbose=_env_flag('LL1_VERBOSE', defaults.verbose),
            trace_by_default=_env_flag('LL1_TRACE', defaults.trace_by_default),
        )


def create_app(config: ServerConfig = None) -> Flask:
    """Build the Flask application serving the LL(1) endpoints."""
    config = config or ServerConfig()

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = config.max_content_length
    app.config['LL1_SERVER'] = config
    app.json.sort_keys = False

    def log(message: str):
        if config.verbose:
            print(f"--- {message} ---", file=sys.stderr)

    def error_response(status: int, message: str, with_html: bool = False):
        body = {"message": message}
        if with_html:
            body['error_html'] = VisualizationGenerator().format_error_message(message)
        return jsonify(body), status

    def wants_trace(payload) -> bool:
        if request.args.get('trace', '').lower() in ('1', 'true'):
            return True
        if isinstance(payload, dict) and payload.get('trace') is True:
            return True
        return config.trace_by_default

    def run_analysis(grammar: Grammar, trace: EngineTrace, with_html: bool = False):
        """Run the engine and map its errors to responses; returns (response, error)."""
        try:
            return LL1Analyzer(trace).analyze(grammar), None
        except GrammarError as e:
            log(f"LL(1) validation FAILED: {e}")
            return None, error_response(400, f"validate ll1 failed: {e}", with_html)

    @app.after_request
    def add_cors_headers(response):
        response.headers['Access-Control-Allow-Origin'] = config.cors_origin
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Accept, Authorization, Content-Type, X-CSRF-Token'
        return response

    @app.route('/health')
    def health():
        return jsonify({"status": "ok"})

    @app.route('/ll1', methods=['POST'])
    def ll1_process():
        """
        Analyze a grammar sent in its JSON wire form.

        The grammar is rewritten to remove immediate left recursion and
        returned with its FIRST, FOLLOW and prediction tables.
        """
        payload = request.get_json(silent=True)
        if payload is None:
            return error_response(400, "invalid body")

        try:
            grammar = Grammar.from_payload(payload)
        except InvalidGrammarPayloadError as e:
            log(f"Grammar payload REJECTED: {e}")
            return error_response(400, f"invalid body: {e}")

        trace = EngineTrace(enabled=wants_trace(payload))
        log(f"Analyzing grammar with {len(grammar.order)} nonterminals")

        try:
            response, error = run_analysis(grammar, trace)
            if error:
                return error

            body = response.to_dict()
            if trace.enabled:
                body['trace'] = trace.get_events()
            return jsonify(body)
        except Exception as e:
            print(f"--- UNEXPECTED Python Error: {e} ---", file=sys.stderr)
            traceback.print_exc(file=sys.stderr)
            return error_response(500, "corrupted ll1 response body")

    @app.route('/ll1/text', methods=['POST'])
    def ll1_process_text():
        """
        Analyze a grammar written as text, one ``A -> alpha | beta`` rule per line.

        The response also carries the rendered HTML tables.
        """
        data = request.get_json(silent=True)
        cfg_input = data.get('cfg') if isinstance(data, dict) else None
        if not cfg_input or not isinstance(cfg_input, str):
            return error_response(400, "No CFG provided", with_html=True)

        try:
            grammar = parse_grammar_text(cfg_input)
        except InvalidGrammarPayloadError as e:
            log(f"Grammar text REJECTED: {e}")
            return error_response(400, f"invalid body: {e}", with_html=True)

        trace = EngineTrace(enabled=wants_trace(data))

        try:
            response, error = run_analysis(grammar, trace, with_html=True)
            if error:
                return error

            body = response.to_dict()
            body['tables_html'] = VisualizationGenerator().generate_result_html(
                response.result, response.grammar.order)
            if trace.enabled:
                body['trace'] = trace.get_events()
            return jsonify(body)
        except Exception as e:
            print(f"--- UNEXPECTED Python Error: {e} ---", file=sys.stderr)
            traceback.print_exc(file=sys.stderr)
            return error_response(500, "corrupted ll1 response body")

    return app


app = create_app(ServerConfig.from_env())


# --- Main Execution ---
if __name__ == '__main__':
    config = app.config['LL1_SERVER']
    print("--- LL(1) Grammar Analysis Server ---")
    print(f"Running on http://{config.host}:{config.port}")
    print("-" * 37)
    app.run(host=config.host, port=config.port)
