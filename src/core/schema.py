"""
Response contract shared by the request builder and the response mapper.

Chart data travels as ``series`` names plus ``data_points`` of
``{label, values}`` because the structured-output schema cannot describe an
object whose keys are chosen by the model.
"""

SCHEMA_VERSION = "1.0"

CHART_TYPES = ("bar", "line", "pie", "area")
TREND_DIRECTIONS = ("up", "down", "neutral")

REQUIRED_FIELDS = ("summary", "kpis", "charts", "fieldDescriptions", "relationshipsFound")
REQUIRED_LIST_FIELDS = ("kpis", "charts", "fieldDescriptions", "relationshipsFound")
REQUIRED_CHART_FIELDS = ("title", "type", "description", "series", "data_points")

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "summary": {
            "type": "STRING",
            "description": "A comprehensive executive summary of the financial findings and correlations.",
        },
        "kpis": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "label": {"type": "STRING"},
                    "value": {"type": "STRING"},
                    "trend": {"type": "NUMBER", "description": "Percentage change if applicable"},
                    "trendDirection": {"type": "STRING", "enum": list(TREND_DIRECTIONS)},
                    "description": {"type": "STRING"},
                },
                "required": ["label", "value", "trendDirection"],
            },
        },
        "relationshipsFound": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": (
                "List of correlations found between files "
                "(e.g., 'Matched CustomerID in Sales.csv with ID in Users.json')"
            ),
        },
        "fieldDescriptions": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "fieldName": {"type": "STRING"},
                    "sourceFile": {"type": "STRING"},
                    "meaning": {"type": "STRING"},
                },
                "required": ["fieldName", "sourceFile", "meaning"],
            },
        },
        "charts": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING"},
                    "type": {"type": "STRING", "enum": list(CHART_TYPES)},
                    "description": {"type": "STRING"},
                    "series": {
                        "type": "ARRAY",
                        "items": {"type": "STRING"},
                        "description": "Names of the data series (e.g. ['Revenue', 'Cost']).",
                    },
                    "data_points": {
                        "type": "ARRAY",
                        "items": {
                            "type": "OBJECT",
                            "properties": {
                                "label": {
                                    "type": "STRING",
                                    "description": "The X-axis label (e.g. Month name, Category)",
                                },
                                "values": {
                                    "type": "ARRAY",
                                    "items": {"type": "NUMBER"},
                                    "description": "Numeric values in the same order as 'series'.",
                                },
                            },
                            "required": ["label", "values"],
                        },
                    },
                },
                "required": list(REQUIRED_CHART_FIELDS),
            },
        },
    },
    "required": list(REQUIRED_FIELDS),
}
