import unittest

from fabric_operator import errors


class TestErrors(unittest.TestCase):
    def test_format(self):
        error = errors.OperatorError(
            errors.ErrorCode.INVALID_PEER_INIT_SPEC,
            "missing enrollment"
        )
        self.assertEqual(str(error), "Code: 15 - missing enrollment")

    def test_wrap(self):
        cause = ValueError("bad name")
        error = errors.OperatorError.wrap(
            cause,
            errors.ErrorCode.INVALID_CUSTOM_RESOURCE_CREATE_REQUEST,
            "failed to validate custom resource name"
        )
        self.assertEqual(
            str(error),
            "Code: 26 - failed to validate custom resource name: bad name"
        )
        self.assertIs(error.__cause__, cause)

    def test_breaking_codes(self):
        self.assertTrue(errors.is_breaking(errors.OperatorError(1, "x")))
        self.assertTrue(errors.is_breaking(errors.OperatorError(26, "x")))
        for code in (17, 18, 23, 27):
            with self.subTest(code = code):
                self.assertFalse(errors.is_breaking(errors.OperatorError(code, "x")))
        self.assertFalse(errors.is_breaking(RuntimeError("x")))

    def test_error_code(self):
        self.assertEqual(errors.get_error_code(errors.OperatorError(23, "x")), 23)
        self.assertEqual(errors.get_error_code(RuntimeError("x")), 0)

    def test_error_code_from_cause(self):
        try:
            try:
                raise errors.OperatorError(24, "migration failed")
            except errors.OperatorError as exc:
                raise RuntimeError("reconcile failed") from exc
        except RuntimeError as exc:
            self.assertEqual(errors.get_error_code(exc), 24)
            self.assertTrue(errors.is_breaking(exc))

    def test_route_error(self):
        self.assertIsNone(errors.route_error(errors.OperatorError(1, "x"), "msg"))
        error = errors.OperatorError(23, "x")
        self.assertIs(errors.route_error(error, "msg"), error)
        error = RuntimeError("x")
        self.assertIs(errors.route_error(error, "msg"), error)
