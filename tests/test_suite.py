"""
Automated test suite - pytest based.
"""

import asyncio
import csv
import io
import json
import sys
import time
from pathlib import Path

import pandas as pd
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.backend.file_parser import FileParser, UploadedFile
from src.core.errors import MalformedJSONError, MalformedReplyError, UnreadableFileError
from src.core.models import NormalizedFile

MARKER = "\n...[TRUNCATED]"


def normalize(name, data):
    return asyncio.run(FileParser().normalize(UploadedFile.from_bytes(name, data)))


def nf(name, text):
    return NormalizedFile(name=name, mime_type="text/csv", text_content=text, size_bytes=len(text))


SAMPLE_REPLY = {
    "summary": "A receita cresceu no trimestre.",
    "kpis": [
        {"label": "Receita Total", "value": "R$ 150,00", "trend": 12.5, "trendDirection": "up"},
        {"label": "Clientes", "value": "42", "trendDirection": "neutral", "description": "Base ativa"},
    ],
    "charts": [
        {
            "title": "Receita vs Custo",
            "type": "bar",
            "description": "Comparativo mensal",
            "series": ["Revenue", "Cost"],
            "data_points": [
                {"label": "Jan", "values": [100, 40]},
                {"label": "Feb", "values": [50]},
            ],
        }
    ],
    "fieldDescriptions": [{"fieldName": "amount", "sourceFile": "sales.csv", "meaning": "Valor da venda"}],
    "relationshipsFound": ["CustomerID em sales.csv corresponde a id em users.json"],
}


class TestConfiguration:
    """Test configuration loading."""

    def test_config_loading(self):
        from src.config import CONFIG
        assert CONFIG is not None
        assert CONFIG.llm is not None
        assert CONFIG.file_parsing.max_chars == 250_000
        assert CONFIG.file_parsing.truncation_marker == MARKER

    def test_api_key_lookup_order(self, monkeypatch):
        from src.config import LLMConfig
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("LLM_API_KEY", "llm-key")
        monkeypatch.setenv("API_KEY", "plain-key")
        assert LLMConfig.from_env().api_key == "llm-key"
        monkeypatch.setenv("GEMINI_API_KEY", "gemini-key")
        assert LLMConfig.from_env().api_key == "gemini-key"

    def test_language_from_env(self, monkeypatch):
        from src.config import AnalysisConfig
        monkeypatch.setenv("ANALYSIS_LANGUAGE", "English")
        assert AnalysisConfig.from_env().output_language == "English"


class TestFileParser:
    """Test file normalization."""

    def test_parser_initialization(self):
        parser = FileParser()
        for ext in ("csv", "xlsx", "xls", "json", "txt"):
            assert ext in parser.supported_formats

    def test_csv_passes_through(self):
        text = "id,amount\n1,10.5\n2,\"3,000\"\n"
        result = normalize("sales.csv", text.encode("utf-8"))
        assert result.text_content == text
        assert result.name == "sales.csv"
        assert result.size_bytes == len(text.encode("utf-8"))

    def test_unknown_extension_passes_through(self):
        assert normalize("dump.sql", b"INSERT INTO t VALUES (1);").text_content == "INSERT INTO t VALUES (1);"

    def test_utf8_bom_is_dropped(self):
        assert normalize("notes.txt", "\ufeffolá".encode("utf-8")).text_content == "olá"

    def test_json_is_minified(self):
        payload = {"clientes": [{"id": 1, "nome": "Ana"}, {"id": 2, "nome": "João"}], "total": 2}
        pretty = json.dumps(payload, indent=4, ensure_ascii=False).encode("utf-8")
        result = normalize("clientes.json", pretty)
        assert json.loads(result.text_content) == payload
        assert "\n" not in result.text_content
        assert ": " not in result.text_content
        assert "João" in result.text_content

    def test_json_extension_is_case_insensitive(self):
        assert normalize("DATA.JSON", b'[ 1, 2 ]').text_content == "[1,2]"

    def test_malformed_json_fails(self):
        with pytest.raises(MalformedJSONError) as exc:
            normalize("broken.json", b'{"a": ')
        assert isinstance(exc.value, UnreadableFileError)
        assert exc.value.file_name == "broken.json"

    @pytest.mark.parametrize("body", [b'{"a": NaN}', b'{"a": Infinity}', b'[-Infinity]'])
    def test_non_standard_json_constants_fail(self, body):
        with pytest.raises(MalformedJSONError):
            normalize("numbers.json", body)

    def test_undecodable_text_fails(self):
        with pytest.raises(UnreadableFileError):
            normalize("latin.txt", b"\xff\xfe\xfa invalid")

    def test_corrupt_spreadsheet_fails(self):
        with pytest.raises(UnreadableFileError):
            normalize("report.XLS", b"this is not a workbook")

    def test_xlsx_first_sheet_as_csv(self, tmp_path):
        path = tmp_path / "book.xlsx"
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame(
                {"Month": ["Jan", "Feb"], "Revenue": [100, 50], "Note": ["A, B", 'say "hi"']}
            ).to_excel(writer, sheet_name="Summary", index=False)
            pd.DataFrame({"Secret": ["hidden"]}).to_excel(writer, sheet_name="Other", index=False)

        upload = UploadedFile.from_path(str(path))
        result = asyncio.run(FileParser().normalize(upload))

        assert result.text_content == 'Month,Revenue,Note\nJan,100,"A, B"\nFeb,50,"say ""hi"""'
        assert "hidden" not in result.text_content
        rows = list(csv.reader(io.StringIO(result.text_content)))
        assert rows == [["Month", "Revenue", "Note"], ["Jan", "100", "A, B"], ["Feb", "50", 'say "hi"']]
        assert result.size_bytes == path.stat().st_size

    def test_truncation_over_limit(self):
        result = normalize("big.txt", b"x" * 250_001)
        assert len(result.text_content) == 250_000 + len(MARKER)
        assert result.text_content.endswith(MARKER)
        assert result.text_content[:250_000] == "x" * 250_000

    def test_no_truncation_at_limit(self):
        result = normalize("edge.txt", b"y" * 250_000)
        assert result.text_content == "y" * 250_000
        assert not result.text_content.endswith(MARKER)

    def test_truncation_logs_warning(self, caplog):
        parser = FileParser(max_chars=5)
        with caplog.at_level("WARNING"):
            assert parser.truncate("tiny.txt", "abcdefgh") == "abcde" + MARKER
        assert "tiny.txt truncated" in caplog.text

    def test_missing_path_fails(self, tmp_path):
        upload = UploadedFile.from_path(str(tmp_path / "gone.csv"))
        with pytest.raises(UnreadableFileError):
            asyncio.run(FileParser().normalize(upload))

    def test_batch_keeps_input_order(self):
        class SlowFirstParser(FileParser):
            def to_text(self, name, raw):
                if name == "first.txt":
                    time.sleep(0.2)
                return super().to_text(name, raw)

        uploads = [
            UploadedFile.from_bytes("first.txt", b"1"),
            UploadedFile.from_bytes("second.txt", b"2"),
            UploadedFile.from_bytes("third.txt", b"3"),
        ]
        results = asyncio.run(SlowFirstParser().normalize_batch(uploads))
        assert [r.name for r in results] == ["first.txt", "second.txt", "third.txt"]
        assert [r.text_content for r in results] == ["1", "2", "3"]

    def test_batch_fails_when_one_file_fails(self):
        uploads = [
            UploadedFile.from_bytes("good.csv", b"a,b\n1,2"),
            UploadedFile.from_bytes("bad.json", b"{nope"),
        ]
        with pytest.raises(MalformedJSONError):
            asyncio.run(FileParser().normalize_batch(uploads))

    def test_empty_batch(self):
        assert asyncio.run(FileParser().normalize_batch([])) == []

    def test_from_path_guesses_mime_type(self, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("a\n1\n")
        upload = UploadedFile.from_path(str(path))
        assert upload.mime_type == "text/csv"
        assert upload.size_bytes == 4


class TestPreviewRecords:
    """Test raw record recovery from normalized content."""

    def test_semicolon_csv(self):
        records = FileParser().preview_records(nf("vendas.csv", "id; valor\n1; 10\n\n2; 20\n"))
        assert records == [{"id": "1", "valor": "10"}, {"id": "2", "valor": "20"}]

    def test_json_list_and_object(self):
        parser = FileParser()
        assert parser.preview_records(nf("a.json", '[{"id":1},{"id":2}]')) == [{"id": 1}, {"id": 2}]
        assert parser.preview_records(nf("b.json", '{"id":1}')) == [{"id": 1}]

    def test_truncation_marker_line_is_skipped(self):
        records = FileParser().preview_records(nf("big.csv", "id,valor\n1,10\n2,2" + MARKER))
        assert records == [{"id": "1", "valor": "10"}, {"id": "2", "valor": "2"}]

    def test_empty_content(self):
        assert FileParser().preview_records(nf("empty.csv", "")) == []

    def test_truncated_json_yields_no_records(self):
        parser = FileParser()
        assert parser.preview_records(nf("big.json", '[{"id":1},{"id":2}]' + MARKER)) == []
        assert parser.preview_records(nf("cut.json", '[{"id":1},{"id"')) == []

    def test_json_body_in_text_file_is_read_as_delimited(self):
        parser = FileParser()
        assert parser.preview_records(nf("numeros.txt", "[1, 2]")) == []
        assert parser.preview_records(nf("valores.txt", "valor\n123\n")) == [{"valor": "123"}]


class TestRequestBuilder:
    """Test context and prompt assembly."""

    def test_zero_files_yield_empty_context(self):
        from src.backend.request_builder import build_context
        assert build_context([]) == ""

    def test_single_file_single_header(self):
        from src.backend.request_builder import build_context
        context = build_context([nf("sales.csv", "id,amount\n1,10")])
        assert context == "\n--- FILE 1: sales.csv ---\nid,amount\n1,10\n"
        assert context.count("--- FILE") == 1

    def test_order_is_preserved(self):
        from src.backend.request_builder import build_context
        a, b = nf("a.csv", "x"), nf("b.json", "[]")
        forward = build_context([a, b])
        assert forward != build_context([b, a])
        assert "--- FILE 1: a.csv ---" in forward
        assert "--- FILE 2: b.json ---" in forward
        assert forward.index("a.csv") < forward.index("b.json")

    def test_prompt_carries_language_and_context(self):
        from src.backend.request_builder import build_prompt
        prompt = build_prompt("\n--- FILE 1: a.csv ---\n{id}\n", language="English")
        assert "in English." in prompt
        assert "--- FILE 1: a.csv ---" in prompt
        assert "{id}" in prompt
        assert "data_points" in prompt

    def test_request_uses_shared_schema(self):
        from src.backend.request_builder import build_request
        from src.core.schema import RESPONSE_SCHEMA, SCHEMA_VERSION
        request = build_request([nf("a.csv", "x")], language="Portuguese (pt-BR)")
        assert request.response_schema is RESPONSE_SCHEMA
        assert request.schema_version == SCHEMA_VERSION
        assert request.files[0].name == "a.csv"
        assert "Portuguese (pt-BR)" in request.prompt

    def test_schema_required_fields(self):
        from src.core.schema import RESPONSE_SCHEMA
        assert RESPONSE_SCHEMA["required"] == [
            "summary", "kpis", "charts", "fieldDescriptions", "relationshipsFound"
        ]
        chart = RESPONSE_SCHEMA["properties"]["charts"]["items"]
        assert chart["properties"]["type"]["enum"] == ["bar", "line", "pie", "area"]
        assert chart["required"] == ["title", "type", "description", "series", "data_points"]
        kpi = RESPONSE_SCHEMA["properties"]["kpis"]["items"]
        assert kpi["required"] == ["label", "value", "trendDirection"]


class TestResponseMapper:
    """Test reply parsing and the long-to-wide chart pivot."""

    def test_pivot_basic(self):
        from src.backend.response_mapper import pivot_series
        rows = pivot_series(["Revenue", "Cost"], [{"label": "Jan", "values": [100, 40]}])
        assert rows == [{"name": "Jan", "Revenue": 100, "Cost": 40}]
        assert list(rows[0].keys()) == ["name", "Revenue", "Cost"]

    def test_pivot_short_values_default_to_zero(self):
        from src.backend.response_mapper import pivot_series
        rows = pivot_series(["Revenue", "Cost"], [{"label": "Feb", "values": [50]}])
        assert rows == [{"name": "Feb", "Revenue": 50, "Cost": 0}]

    def test_pivot_null_value_is_zero(self):
        from src.backend.response_mapper import pivot_series
        assert pivot_series(["A"], [{"label": "x", "values": [None]}]) == [{"name": "x", "A": 0}]

    def test_map_response_charts(self):
        from src.backend.response_mapper import map_response
        result = map_response(SAMPLE_REPLY)
        chart = result.charts[0]
        assert chart.id == "chart-0"
        assert chart.x_axis_key == "name"
        assert chart.data_keys == ("Revenue", "Cost")
        assert list(chart.data) == [
            {"name": "Jan", "Revenue": 100, "Cost": 40},
            {"name": "Feb", "Revenue": 50, "Cost": 0},
        ]
        assert chart.type == "bar"

    def test_map_response_passthrough(self):
        from src.backend.response_mapper import map_response
        result = map_response(SAMPLE_REPLY)
        assert result.summary == SAMPLE_REPLY["summary"]
        assert result.kpis[0].value == "R$ 150,00"
        assert result.kpis[0].trend == 12.5
        assert result.kpis[0].trend_direction == "up"
        assert result.kpis[1].trend is None
        assert result.field_descriptions[0].source_file == "sales.csv"
        assert result.relationships_found == tuple(SAMPLE_REPLY["relationshipsFound"])

    def test_to_dict_uses_wire_names(self):
        from src.backend.response_mapper import map_response
        data = map_response(SAMPLE_REPLY).to_dict()
        assert data["charts"][0]["xAxisKey"] == "name"
        assert data["charts"][0]["dataKeys"] == ["Revenue", "Cost"]
        assert data["fieldDescriptions"][0]["fieldName"] == "amount"
        assert data["kpis"][0]["trendDirection"] == "up"
        assert "trend" not in data["kpis"][1]
        json.dumps(data)

    def test_missing_charts_fails(self):
        from src.backend.response_mapper import map_response
        reply = {k: v for k, v in SAMPLE_REPLY.items() if k != "charts"}
        with pytest.raises(MalformedReplyError):
            map_response(reply)

    def test_chart_without_series_fails(self):
        from src.backend.response_mapper import map_response
        reply = dict(SAMPLE_REPLY, charts=[{"title": "t", "type": "bar", "description": "", "data_points": []}])
        with pytest.raises(MalformedReplyError):
            map_response(reply)

    def test_parse_reply(self):
        from src.backend.response_mapper import parse_reply
        assert parse_reply(json.dumps(SAMPLE_REPLY)) == SAMPLE_REPLY
        assert parse_reply("```json\n{\"a\": 1}\n```") == {"a": 1}

    def test_parse_reply_keeps_backticks_inside_strings(self):
        from src.backend.response_mapper import map_response, parse_reply
        reply = dict(SAMPLE_REPLY, summary='Exemplo: ```json {"a": 1}``` e ``` fim ```')
        parsed = parse_reply(json.dumps(reply))
        assert parsed == reply
        assert map_response(parsed).summary == reply["summary"]

    @pytest.mark.parametrize("text", ["", "not json", "[1, 2]"])
    def test_parse_reply_rejects(self, text):
        from src.backend.response_mapper import parse_reply
        with pytest.raises(MalformedReplyError):
            parse_reply(text)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
