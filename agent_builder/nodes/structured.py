import json

from .base import ExecutorNode
from ..clients import ParserClient, RemoteServiceError, SchemaClient
from ..schemas import NodeResult


class StructuredOutputNode(ExecutorNode):
    """
    Format free text against a JSON schema.

    Inside a flow run the node only records that it was passed. When tested on
    its own it sends ``inputData`` and the schema to the parser service. If
    ``schema`` is blank, the schema is first generated from ``schemaDescription``.
    """
    NODE_TYPE = "Structured Output"
    DESCRIPTION = "Format data against a JSON schema"
    SERVICE_URL_KEY = "parse"
    PARAMS = {
        "schema": {"name": "JSON Schema", "type": "textarea"},
        "inputData": {"name": "Input Data", "type": "textarea", "required": True},
        "schemaDescription": {"name": "Schema Description (natural language)", "type": "textarea"},
    }

    def prep(self, shared):
        self.standalone = bool(shared.get("standalone"))
        self.schema_endpoint = self.service_url(shared, "schema")
        return super().prep(shared)

    def exec(self, prep_res) -> NodeResult:
        if not self.standalone:
            return NodeResult(success=True, output=f"Skipped: {self.NODE_TYPE} nodes have no runtime action")
        return super().exec(prep_res)

    def resolve_schema(self, prep_res) -> str:
        schema = prep_res["schema"].strip()
        if not schema:
            description = prep_res["schemaDescription"].strip()
            if not description:
                raise ValueError("schema or schemaDescription is required.")
            schema = SchemaClient(self.schema_endpoint).generate_schema(description)
        try:
            json.loads(schema)
        except ValueError:
            raise ValueError("Invalid JSON Schema format") from None
        return schema

    def call(self, prep_res) -> str:
        schema = self.resolve_schema(prep_res)
        try:
            data = ParserClient(self.endpoint).parse(prep_res["inputData"], schema)
        except RemoteServiceError as e:
            raw = e.payload.get("output")
            if raw is None:
                raise
            raise RemoteServiceError(f"{e}\n\n--- Raw Output ---\n{raw}", payload=e.payload) from e

        output = "Structured Output Complete\n\n"
        output += "--- Schema ---\n"
        output += schema + "\n\n"
        output += "--- Parsed Data ---\n"
        output += json.dumps(data["parsedData"], indent=2, ensure_ascii=False)
        return output
