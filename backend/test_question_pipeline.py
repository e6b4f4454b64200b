"""Tests for the end-to-end generation pipeline with a stubbed model."""

import json
import unittest
from unittest.mock import patch

from generation_errors import InputValidationError, ParseError, SchemaError, UpstreamGenerationError
from question_pipeline import generate_question_batch, validate_generation_request
from response_parsing import PassthroughExtractor, ResponseShapeAdapter


MCQ = {
    'content': 'Find \\(f\'(x)\\) for \\(f(x) = x^2\\).',
    'type': 'mcq',
    'subject': 'Calculus',
    'difficulty': 'Easy',
    'options': [
        {'label': 'A', 'text': '\\(2x\\)'},
        {'label': 'B', 'text': '\\(x\\)'},
        {'label': 'C', 'text': '\\(x^2\\)'},
        {'label': 'D', 'text': '\\(2\\)'},
    ],
    'correctAnswer': ' a ',
}
FRQ = {
    'content': 'Find the area under \\(y = x\\) on \\([0, 2]\\).',
    'type': 'frq',
    'rubric': {'points': 3, 'criteria': ['Sets up integral', 'Evaluates', 'Answers 2']},
}


class ValidateGenerationRequestTest(unittest.TestCase):
    def test_defaults(self) -> None:
        generation_request = validate_generation_request({'topic': '  derivatives  '})
        self.assertEqual(generation_request.topic, 'derivatives')
        self.assertEqual(generation_request.test_type, 'mcq')
        self.assertEqual(generation_request.question_count, 1)
        self.assertEqual(generation_request.difficulty, 'intermediate')
        self.assertFalse(generation_request.include_issues)

    def test_count_accepts_integral_values(self) -> None:
        self.assertEqual(validate_generation_request({'topic': 't', 'questionCount': '5'}).question_count, 5)
        self.assertEqual(validate_generation_request({'topic': 't', 'questionCount': 5.0}).question_count, 5)

    def test_large_count_is_accepted(self) -> None:
        self.assertEqual(validate_generation_request({'topic': 't', 'questionCount': 40}).question_count, 40)

    def test_blank_difficulty_falls_back_to_default(self) -> None:
        for difficulty in ('', '   ', None):
            generation_request = validate_generation_request({'topic': 't', 'difficulty': difficulty})
            self.assertEqual(generation_request.difficulty, 'intermediate')
        self.assertEqual(
            validate_generation_request({'topic': 't', 'difficulty': ' AP level '}).difficulty,
            'AP level',
        )

    def test_rejections(self) -> None:
        for body in (
            None,
            'topic',
            {},
            {'topic': None},
            {'topic': 't', 'questionCount': -2},
            {'topic': 't', 'questionCount': 2.5},
            {'topic': 't', 'questionCount': '--5'},
            {'topic': 't', 'difficulty': 3},
        ):
            with self.assertRaises(InputValidationError):
                validate_generation_request(body)


@patch('question_pipeline.request_completion')
class GenerateQuestionBatchTest(unittest.TestCase):
    def test_full_batch_with_math_notation(self, mock_request_completion) -> None:
        # The model writes LaTeX with single backslashes, which is invalid JSON as-is.
        raw_payload = json.dumps([MCQ, FRQ]).replace('\\\\', '\\')
        mock_request_completion.return_value = 'Here are your questions:\n' + raw_payload

        result = generate_question_batch('derivatives and integrals', 'full', 2, 'intermediate')

        self.assertEqual([q['type'] for q in result.questions], ['mcq', 'frq'])
        self.assertEqual(result.questions[0]['content'], MCQ['content'])
        self.assertEqual(result.questions[0]['correctAnswer'], 'A')
        self.assertEqual(result.questions[0]['options'][3]['text'], '\\(2\\)')
        self.assertEqual(result.questions[1]['rubric']['points'], 3)
        self.assertEqual(result.issues, [])

    def test_result_length_follows_model_not_request(self, mock_request_completion) -> None:
        mock_request_completion.return_value = json.dumps([MCQ, MCQ, MCQ])

        result = generate_question_batch('derivatives', 'mcq', 5)

        self.assertEqual([q['id'] for q in result.questions], [0, 1, 2])

    def test_invalid_topic_never_calls_model(self, mock_request_completion) -> None:
        with self.assertRaises(InputValidationError):
            generate_question_batch('   ')
        with self.assertRaises(InputValidationError):
            generate_question_batch(None)
        self.assertEqual(mock_request_completion.call_count, 0)

    def test_upstream_failure_propagates(self, mock_request_completion) -> None:
        mock_request_completion.side_effect = UpstreamGenerationError('unreachable')
        with self.assertRaises(UpstreamGenerationError):
            generate_question_batch('derivatives')

    def test_parse_and_schema_failures_abort(self, mock_request_completion) -> None:
        mock_request_completion.return_value = 'Sorry, I cannot do that.'
        with self.assertRaises(ParseError):
            generate_question_batch('derivatives')

        mock_request_completion.return_value = '{"content": "lonely question"}'
        with self.assertRaises(SchemaError):
            generate_question_batch('derivatives')

    def test_custom_extractor(self, mock_request_completion) -> None:
        mock_request_completion.return_value = json.dumps({'questions': [MCQ]})

        class QuestionsKeyExtractor(ResponseShapeAdapter):
            def extract(self, raw_text: str) -> str:
                return json.dumps(json.loads(raw_text)['questions'])

        result = generate_question_batch('derivatives', extractor=QuestionsKeyExtractor())
        self.assertEqual(len(result.questions), 1)

        with self.assertRaises(SchemaError):
            generate_question_batch('derivatives', extractor=PassthroughExtractor())


if __name__ == '__main__':
    unittest.main()
