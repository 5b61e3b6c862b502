"""
Client for Claude models hosted on AWS Bedrock, called through the runtime
invoke endpoint with a bearer token.
"""

import logging
import os
import re
from typing import List, Dict, Optional, Any

import requests

logger = logging.getLogger(__name__)

MODEL_IDS = {
    'sonnet': 'anthropic.claude-3-5-sonnet-20240620-v1:0',
    'haiku': 'anthropic.claude-3-haiku-20240307-v1:0',
}
ANTHROPIC_VERSION = 'bedrock-2023-05-31'
MAX_TOKENS = 4000
TEMPERATURE = 0.7

_FENCE_OPEN = re.compile(r'^```[a-zA-Z]*\n?')
_FENCE_CLOSE = re.compile(r'\n?```$')


class AIServiceError(Exception):
    """Raised when the model endpoint fails or answers with an unusable body"""

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(f"Bedrock API error: {status_code} - {message}" if status_code else message)
        self.status_code = status_code
        self.message = message


def invoke_claude(messages: List[Dict[str, str]], system_prompt: Optional[str] = None,
                  model: str = 'sonnet') -> str:
    """Send a conversation to Claude and return the text of the first content block.

    messages is a list of {'role': 'user'|'assistant', 'content': str}.
    Raises AIServiceError on a non-2xx answer, a transport failure or a
    response without text.
    """
    model_id = MODEL_IDS.get(model, MODEL_IDS['sonnet'])
    region = os.environ.get('AWS_REGION', 'us-east-1')
    token = os.environ.get('AWS_BEARER_TOKEN_BEDROCK', '')
    timeout = float(os.environ.get('AI_TIMEOUT_SECONDS', '60'))

    payload: Dict[str, Any] = {
        'anthropic_version': ANTHROPIC_VERSION,
        'max_tokens': MAX_TOKENS,
        'messages': messages,
        'temperature': TEMPERATURE,
    }
    if system_prompt:
        payload['system'] = system_prompt

    url = f"https://bedrock-runtime.{region}.amazonaws.com/model/{model_id}/invoke"
    try:
        response = requests.post(
            url,
            json=payload,
            headers={
                'Authorization': f'Bearer {token}',
                'Content-Type': 'application/json',
            },
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.error(f"Bedrock request failed: {e}", exc_info=True)
        raise AIServiceError(None, f"Bedrock request failed: {e}") from e

    if not response.ok:
        raise AIServiceError(response.status_code, response.text)

    try:
        data = response.json()
    except ValueError as e:
        raise AIServiceError(None, 'Invalid response format from Claude') from e

    content = data.get('content') or []
    if content and content[0].get('text'):
        usage = data.get('usage') or {}
        logger.info(f"Claude {model} call: {usage.get('input_tokens')} in / {usage.get('output_tokens')} out tokens")
        return content[0]['text']
    raise AIServiceError(None, 'Invalid response format from Claude')


def strip_code_fences(text: str) -> str:
    """Remove a markdown code fence wrapped around a model answer"""
    content = text.strip()
    if content.startswith('```'):
        content = _FENCE_CLOSE.sub('', _FENCE_OPEN.sub('', content)).strip()
    return content
