from .base import ExecutorNode, parse_float, parse_int
from ..clients import GenerationClient


class LLMNode(ExecutorNode):
    """
    Generate text through the generation service.

    Numeric parameters arrive as strings from the parameter form and fall
    back to their defaults when blank or unparsable.
    """
    NODE_TYPE = "LLM"
    DESCRIPTION = "Generate text with a language model"
    SERVICE_URL_KEY = "generation"
    PARAMS = {
        "model": {"name": "Model", "type": "select", "options": ["Gemini"]},
        "systemInstruction": {"name": "System Instruction", "type": "textarea"},
        "userMessage": {"name": "User Message", "type": "textarea", "required": True},
        "temperature": {"name": "Temperature (0-1)"},
        "maxOutputTokens": {"name": "Max Output Tokens"},
        "topK": {"name": "Top K"},
    }

    DEFAULT_TEMPERATURE = 0.7
    DEFAULT_MAX_OUTPUT_TOKENS = 1024
    DEFAULT_TOP_K = 40

    def prep(self, shared):
        params = super().prep(shared)
        self.temperature = parse_float(params["temperature"], self.DEFAULT_TEMPERATURE)
        self.max_output_tokens = parse_int(params["maxOutputTokens"], self.DEFAULT_MAX_OUTPUT_TOKENS)
        self.top_k = parse_int(params["topK"], self.DEFAULT_TOP_K)
        return params

    def call(self, prep_res) -> str:
        client = GenerationClient(self.endpoint)
        return client.generate(
            user_message=prep_res["userMessage"],
            system_instruction=prep_res["systemInstruction"],
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            top_k=self.top_k,
        )
