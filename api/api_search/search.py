from flask import Flask, jsonify, request
from flask_cors import CORS

from api.common.config import Settings, get_database
from api.common.errors import register_error_handlers
from api.common.logging_config import get_logger, setup_logging
from api.common.refine import parse_limit
from api.api_search.search_functions import DEFAULT_SEARCH_LIMIT, parse_search_types, search_all

settings = Settings.from_env()
setup_logging(settings.log_level, settings.log_file, settings.log_dir)
logger = get_logger(__name__)

app = Flask(__name__)
app.json.sort_keys = False
CORS(app)
register_error_handlers(app)

db = get_database(settings)
search_collections = {
    "movies": db["movies"],
    "actors": db["actors"],
    "filmmakers": db["filmmakers"],
    "posts": db["posts"],
}


@app.route("/search", methods=["GET"])
def get_search():
    """
    Handle GET requests for the unified search.

    Query parameters:
        q: Free text.
        types: Comma-separated buckets, every bucket by default.
        limit: Maximum results per bucket, 20 by default.

    Returns:
        Response: Matches grouped by bucket.
    """
    query = request.args.get("q", "")
    search_types = parse_search_types(request.args.get("types"))
    limit = parse_limit(request.args.get("limit"), DEFAULT_SEARCH_LIMIT, settings.max_page_size)

    results = search_all(search_collections, query, search_types, limit)
    return jsonify({"query": query.strip(), **results})


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5005, debug=True)
