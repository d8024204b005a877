import logging
import os
from flask import Flask, jsonify, request
from flask_cors import CORS

from catalog import get_store, slugify
from search import (
    QueryParams,
    filter_by_category,
    get_featured_tools,
    get_tool_by_slug,
    get_tools_by_category,
    page_window,
    paginate,
    query_tools,
    search_tools,
    sort_records,
)

app = Flask(__name__)
app.logger.setLevel(logging.INFO)
CORS(app)

RELATED_TOOLS = 3


def _limit_arg(default):
    try:
        return max(0, int(request.args.get("limit", default)))
    except (TypeError, ValueError):
        return default


@app.route('/')
def home():
    return jsonify({"status": "ok", "tools": len(get_store())})


@app.route('/api/tools')
def list_tools():
    params = QueryParams.from_args(request.args)

    try:
        result = query_tools(params)
    except Exception:
        app.logger.exception("Error querying tools with %s", params)
        result = paginate([], params.page, params.page_size)

    payload = result.to_dict()
    payload["pages"] = page_window(result.page, result.total_pages)
    payload["params"] = params.to_args()
    return jsonify(payload)


@app.route('/api/search')
def search():
    params = QueryParams.from_args(request.args, default_sort="relevance")
    if not params.q.strip():
        return jsonify({"query": "", "count": 0, "results": []})

    try:
        results = search_tools(params.q)
        results = sort_records(filter_by_category(results, params.category), params.sort)
        app.logger.info("Search for %r matched %d tools", params.q, len(results))
    except Exception:
        app.logger.exception("Error searching tools for %r", params.q)
        results = []

    return jsonify({
        "query": params.q,
        "count": len(results),
        "results": [tool.to_dict() for tool in results],
    })


@app.route('/api/tools/<slug>')
def tool_detail(slug):
    try:
        tool = get_tool_by_slug(slug)
        related = [t for t in get_featured_tools(RELATED_TOOLS + 1) if tool and t.id != tool.id]
    except Exception:
        app.logger.exception("Error looking up tool %r", slug)
        tool, related = None, []

    if tool is None:
        return jsonify({"error": "Tool not found"}), 404

    payload = tool.to_dict()
    payload["related"] = [t.to_dict() for t in related[:RELATED_TOOLS]]
    return jsonify(payload)


@app.route('/api/categories')
def categories():
    try:
        counts = get_store().get_category_counts()
    except Exception:
        app.logger.exception("Error counting categories")
        counts = []

    return jsonify([c.model_dump() for c in counts])


@app.route('/api/categories/<category>')
def category_tools(category):
    try:
        name = get_store().resolve_category(category)
        tools = get_tools_by_category(name) if name is not None else []
    except Exception:
        app.logger.exception("Error listing tools for category %r", category)
        name, tools = None, []

    if name is None:
        return jsonify({"error": "Category not found"}), 404

    return jsonify({
        "category": name,
        "slug": slugify(name),
        "count": len(tools),
        "tools": [tool.to_dict() for tool in tools],
    })


@app.route('/api/featured')
def featured():
    try:
        tools = get_featured_tools(_limit_arg(3))
    except Exception:
        app.logger.exception("Error selecting featured tools")
        tools = []

    return jsonify([tool.to_dict() for tool in tools])


if __name__ == '__main__':
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port)
