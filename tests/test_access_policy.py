import unittest
from types import SimpleNamespace

from formhub.services.access_policy import (
    can_delete_response,
    can_mutate_form,
    can_mutate_response,
    can_submit_response,
    can_view_form,
    can_view_response,
)


def _form(is_public: bool, user_id: str = "owner-1"):
    return SimpleNamespace(is_public=is_public, user_id=user_id)


class FormPolicyTests(unittest.TestCase):
    def test_public_form_is_visible_to_anyone(self):
        form = _form(True)
        self.assertTrue(can_view_form(form, None))
        self.assertTrue(can_view_form(form, "someone-else"))

    def test_private_form_is_visible_to_owner_only(self):
        form = _form(False)
        self.assertTrue(can_view_form(form, "owner-1"))
        self.assertFalse(can_view_form(form, "someone-else"))
        self.assertFalse(can_view_form(form, None))

    def test_mutation_requires_owner_even_on_public_forms(self):
        form = _form(True)
        self.assertTrue(can_mutate_form(form, "owner-1"))
        self.assertFalse(can_mutate_form(form, "someone-else"))
        self.assertFalse(can_mutate_form(form, None))

    def test_empty_caller_never_matches_empty_owner(self):
        form = _form(False, user_id="")
        self.assertFalse(can_view_form(form, ""))
        self.assertFalse(can_mutate_form(form, None))

    def test_submission_follows_visibility(self):
        self.assertTrue(can_submit_response(_form(True), None))
        self.assertTrue(can_submit_response(_form(False), "owner-1"))
        self.assertFalse(can_submit_response(_form(False), None))
        self.assertFalse(can_submit_response(_form(False), "someone-else"))


class ResponsePolicyTests(unittest.TestCase):
    def test_owner_and_submitter_can_view(self):
        response = SimpleNamespace(user_id="submitter")
        self.assertTrue(can_view_response(response, "owner-1", "owner-1"))
        self.assertTrue(can_view_response(response, "owner-1", "submitter"))
        self.assertFalse(can_view_response(response, "owner-1", "stranger"))
        self.assertFalse(can_view_response(response, "owner-1", None))

    def test_anonymous_response_is_visible_to_owner_only(self):
        response = SimpleNamespace(user_id=None)
        self.assertTrue(can_view_response(response, "owner-1", "owner-1"))
        self.assertFalse(can_view_response(response, "owner-1", None))

    def test_mutation_is_owner_only(self):
        self.assertTrue(can_mutate_response("owner-1", "owner-1"))
        self.assertFalse(can_mutate_response("owner-1", "submitter"))
        self.assertFalse(can_mutate_response("owner-1", None))

    def test_submitter_may_delete_own_response(self):
        response = SimpleNamespace(user_id="submitter")
        self.assertTrue(can_delete_response(response, "owner-1", "submitter"))
        self.assertTrue(can_delete_response(response, "owner-1", "owner-1"))
        self.assertFalse(can_delete_response(response, "owner-1", "stranger"))
