import unittest
import os
from unittest.mock import patch, Mock

import requests

from pitchside.ai.client import invoke_claude, AIServiceError, MODEL_IDS


def _response(ok=True, status_code=200, body=None, text=''):
    response = Mock()
    response.ok = ok
    response.status_code = status_code
    response.text = text
    response.json.return_value = body
    return response


@patch.dict(os.environ, {'AWS_REGION': 'eu-west-2', 'AWS_BEARER_TOKEN_BEDROCK': 'token-123'})
class TestInvokeClaude(unittest.TestCase):
    @patch('pitchside.ai.client.requests.post')
    def test_returns_first_text_block(self, mock_post):
        mock_post.return_value = _response(body={
            'content': [{'type': 'text', 'text': 'Keep the ball moving'}],
            'usage': {'input_tokens': 10, 'output_tokens': 4},
        })

        answer = invoke_claude([{'role': 'user', 'content': 'Hi'}], 'Be brief', model='haiku')

        self.assertEqual(answer, 'Keep the ball moving')
        url = mock_post.call_args.args[0]
        self.assertEqual(url, f"https://bedrock-runtime.eu-west-2.amazonaws.com/model/{MODEL_IDS['haiku']}/invoke")
        kwargs = mock_post.call_args.kwargs
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer token-123')
        self.assertEqual(kwargs['json']['system'], 'Be brief')
        self.assertEqual(kwargs['json']['messages'], [{'role': 'user', 'content': 'Hi'}])

    @patch('pitchside.ai.client.requests.post')
    def test_unknown_model_falls_back_to_sonnet(self, mock_post):
        mock_post.return_value = _response(body={'content': [{'type': 'text', 'text': 'ok'}]})
        invoke_claude([{'role': 'user', 'content': 'Hi'}], model='opus-max')
        self.assertIn(MODEL_IDS['sonnet'], mock_post.call_args.args[0])
        self.assertNotIn('system', mock_post.call_args.kwargs['json'])

    @patch('pitchside.ai.client.requests.post')
    def test_http_error(self, mock_post):
        mock_post.return_value = _response(ok=False, status_code=429, text='Too many requests')
        with self.assertRaises(AIServiceError) as ctx:
            invoke_claude([{'role': 'user', 'content': 'Hi'}])
        self.assertEqual(ctx.exception.status_code, 429)

    @patch('pitchside.ai.client.requests.post')
    def test_transport_error(self, mock_post):
        mock_post.side_effect = requests.ConnectionError('connection refused')
        with self.assertRaises(AIServiceError) as ctx:
            invoke_claude([{'role': 'user', 'content': 'Hi'}])
        self.assertIsNone(ctx.exception.status_code)

    @patch('pitchside.ai.client.requests.post')
    def test_response_without_text(self, mock_post):
        mock_post.return_value = _response(body={'content': []})
        with self.assertRaises(AIServiceError):
            invoke_claude([{'role': 'user', 'content': 'Hi'}])


if __name__ == '__main__':
    unittest.main()
