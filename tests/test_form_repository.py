import uuid
from unittest.mock import patch

from sqlalchemy import text

from tests.base import OTHER_ID, OWNER_ID, FormhubDbTestCase

from formhub.core.errors import NotFound, Unauthorized
from formhub.models.field_option import FieldOption
from formhub.models.form import Form
from formhub.models.form_field import FormField
from formhub.models.form_response import FormResponse
from formhub.models.response_value import ResponseValue
from formhub.schemas.forms import FieldIn, FormCreate, FormUpdate
from formhub.services import form_repository, response_repository


def _draft(**overrides) -> FormCreate:
    payload = {
        "title": "Feedback",
        "description": "Tell us",
        "isPublic": True,
        "fields": [
            {"type": "short-text", "label": "Name", "required": True},
            {
                "type": "dropdown",
                "label": "Pick",
                "options": [{"value": "A"}, {"value": "B"}, {"value": "C"}],
            },
            {"type": "number", "label": "Age", "properties": {"minValue": 0, "maxValue": 120}},
        ],
    }
    payload.update(overrides)
    return FormCreate.model_validate(payload)


def _as_input(field) -> dict:
    return FieldIn.model_validate(field.model_dump()).model_dump(by_alias=True)


class CreateAndReadFormTests(FormhubDbTestCase):
    def test_create_form_assigns_dense_order_and_options(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())

        self.assertEqual(form.title, "Feedback")
        self.assertTrue(form.is_public)
        self.assertEqual(form.user_id, OWNER_ID)
        self.assertEqual(form.response_count, 0)
        self.assertEqual([field.order for field in form.fields], [0, 1, 2])
        self.assertEqual([field.label for field in form.fields], ["Name", "Pick", "Age"])
        self.assertIsNone(form.fields[0].options)

        dropdown = form.fields[1]
        self.assertEqual([option.value for option in dropdown.options], ["A", "B", "C"])
        self.assertEqual([option.order for option in dropdown.options], [0, 1, 2])
        self.assertEqual(form.fields[2].properties, {"minValue": 0, "maxValue": 120})

    def test_blank_title_falls_back_to_default_and_settings_are_filled(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft(title="   ", fields=[]))
        self.assertEqual(form.title, "Untitled Form")
        self.assertEqual(form.settings["submitButtonText"], "Submit")
        self.assertEqual(form.settings["confirmationMessage"], "Thank you for your submission!")
        self.assertFalse(form.settings["showProgressBar"])

    def test_unknown_settings_keys_are_kept(self):
        form = form_repository.create_form(
            self.db,
            OWNER_ID,
            _draft(settings={"submitButtonText": "Send", "theme": "dark"}, fields=[]),
        )
        self.assertEqual(form.settings["submitButtonText"], "Send")
        self.assertEqual(form.settings["theme"], "dark")

    def test_nested_properties_win_over_top_level_keys(self):
        form = form_repository.create_form(
            self.db,
            OWNER_ID,
            _draft(fields=[{"type": "long-text", "label": "Bio", "rows": 3, "maxLength": 50, "properties": {"rows": 8}}]),
        )
        field = form.fields[0]
        self.assertEqual(field.properties, {"rows": 8, "maxLength": 50})
        self.assertEqual(field.model_dump(by_alias=True)["maxLength"], 50)

    def test_get_form_not_found(self):
        with self.assertRaises(NotFound):
            form_repository.get_form(self.db, str(uuid.uuid4()))
        with self.assertRaises(NotFound):
            form_repository.get_form(self.db, "not-a-uuid")

    def test_list_forms_returns_owner_forms_most_recently_updated_first(self):
        first = form_repository.create_form(self.db, OWNER_ID, _draft(title="First", fields=[]))
        second = form_repository.create_form(self.db, OWNER_ID, _draft(title="Second", fields=[]))
        form_repository.create_form(self.db, OTHER_ID, _draft(title="Foreign", fields=[]))

        form_repository.update_form(self.db, first.id, OWNER_ID, FormUpdate.model_validate({"title": "First v2"}))

        forms = form_repository.list_forms(self.db, OWNER_ID)
        self.assertEqual([form.id for form in forms], [first.id, second.id])
        self.assertEqual(forms[0].title, "First v2")

    def test_response_count_tracks_submissions(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft(fields=[]))
        response_repository.submit_response(self.db, form.id, {})
        response_repository.submit_response(self.db, form.id, {})
        self.assertEqual(form_repository.get_form(self.db, form.id).response_count, 2)

    def test_response_count_falls_back_to_zero_when_count_query_fails(self):
        first = form_repository.create_form(self.db, OWNER_ID, _draft(title="First"))
        second = form_repository.create_form(self.db, OWNER_ID, _draft(title="Second", fields=[]))
        response_repository.submit_response(self.db, second.id, {})

        def broken_count(db, form_id):
            return db.execute(text("SELECT COUNT(*) FROM no_such_table")).scalar()

        with patch("formhub.services.form_repository._count_responses", side_effect=broken_count):
            fetched = form_repository.get_form(self.db, second.id)
            listed = form_repository.list_forms(self.db, OWNER_ID)

        self.assertEqual(fetched.response_count, 0)
        self.assertEqual(sorted(form.id for form in listed), sorted([first.id, second.id]))
        self.assertTrue(all(form.response_count == 0 for form in listed))
        # "Second" is listed first; "First" is hydrated after its count failed.
        self.assertEqual([form.id for form in listed], [second.id, first.id])
        self.assertEqual(len(listed[1].fields), 3)
        self.assertEqual(form_repository.get_form(self.db, second.id).response_count, 1)


class UpdateFormTests(FormhubDbTestCase):
    def test_partial_update_only_touches_provided_keys(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())
        updated = form_repository.update_form(
            self.db, form.id, OWNER_ID, FormUpdate.model_validate({"description": "Changed"})
        )
        self.assertEqual(updated.description, "Changed")
        self.assertEqual(updated.title, "Feedback")
        self.assertTrue(updated.is_public)
        self.assertEqual([field.id for field in updated.fields], [field.id for field in form.fields])

    def test_reorder_delete_and_create_fields(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())
        name, pick, age = form.fields

        patch = FormUpdate.model_validate(
            {
                "fields": [
                    {"id": age.id, "type": "number", "label": "Age (years)"},
                    {"type": "email", "label": "Email", "required": True},
                    {"id": name.id, "type": "short-text", "label": "Name", "required": True},
                ]
            }
        )
        updated = form_repository.update_form(self.db, form.id, OWNER_ID, patch)

        self.assertEqual([field.label for field in updated.fields], ["Age (years)", "Email", "Name"])
        self.assertEqual([field.order for field in updated.fields], [0, 1, 2])
        self.assertEqual(updated.fields[0].id, age.id)
        self.assertEqual(updated.fields[2].id, name.id)
        self.assertNotIn(pick.id, {field.id for field in updated.fields})
        self.assertEqual(self.count(FormField), 3)
        # Options of the removed dropdown are gone with it.
        self.assertEqual(self.count(FieldOption), 0)

    def test_resubmitting_read_model_is_idempotent(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())
        patch = FormUpdate.model_validate({"fields": [_as_input(field) for field in form.fields]})

        updated = form_repository.update_form(self.db, form.id, OWNER_ID, patch)

        self.assertEqual([field.id for field in updated.fields], [field.id for field in form.fields])
        self.assertEqual(
            [option.id for option in updated.fields[1].options],
            [option.id for option in form.fields[1].options],
        )
        self.assertEqual(self.count(FormField), 3)
        self.assertEqual(self.count(FieldOption), 3)

    def test_options_are_reconciled_by_id(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())
        pick = form.fields[1]
        option_c = pick.options[2]

        patch = FormUpdate.model_validate(
            {
                "fields": [
                    _as_input(form.fields[0]),
                    {
                        "id": pick.id,
                        "type": "dropdown",
                        "label": "Pick",
                        "options": [{"id": option_c.id, "value": "C!"}, {"value": "D"}],
                    },
                    _as_input(form.fields[2]),
                ]
            }
        )
        updated = form_repository.update_form(self.db, form.id, OWNER_ID, patch)

        options = updated.fields[1].options
        self.assertEqual([option.value for option in options], ["C!", "D"])
        self.assertEqual([option.order for option in options], [0, 1])
        self.assertEqual(options[0].id, option_c.id)
        self.assertEqual(self.count(FieldOption), 2)

    def test_omitted_options_are_left_untouched(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())
        pick = form.fields[1]
        patch = FormUpdate.model_validate(
            {"fields": [{"id": pick.id, "type": "dropdown", "label": "Pick one"}]}
        )
        updated = form_repository.update_form(self.db, form.id, OWNER_ID, patch)
        self.assertEqual(updated.fields[0].label, "Pick one")
        self.assertEqual([option.value for option in updated.fields[0].options], ["A", "B", "C"])

    def test_changing_type_away_from_choices_drops_options(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())
        pick = form.fields[1]
        patch = FormUpdate.model_validate({"fields": [{"id": pick.id, "type": "short-text", "label": "Pick"}]})
        updated = form_repository.update_form(self.db, form.id, OWNER_ID, patch)
        self.assertIsNone(updated.fields[0].options)
        self.assertEqual(self.count(FieldOption), 0)

    def test_empty_field_list_removes_all_fields(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())
        updated = form_repository.update_form(self.db, form.id, OWNER_ID, FormUpdate.model_validate({"fields": []}))
        self.assertEqual(updated.fields, [])
        self.assertEqual(self.count(FormField), 0)

    def test_non_owner_cannot_update(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())
        with self.assertRaises(Unauthorized):
            form_repository.update_form(self.db, form.id, OTHER_ID, FormUpdate.model_validate({"title": "Hijack"}))
        self.assertEqual(form_repository.get_form(self.db, form.id).title, "Feedback")

    def test_update_unknown_form(self):
        with self.assertRaises(NotFound):
            form_repository.update_form(self.db, str(uuid.uuid4()), OWNER_ID, FormUpdate())

    def test_answers_survive_field_removal(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())
        name = form.fields[0]
        submitted = response_repository.submit_response(self.db, form.id, {name.id: "Ada"})

        form_repository.update_form(self.db, form.id, OWNER_ID, FormUpdate.model_validate({"fields": []}))

        stored = response_repository.get_response(self.db, submitted["response_id"], OWNER_ID)
        self.assertEqual(stored.values, {name.id: "Ada"})


class DeleteFormTests(FormhubDbTestCase):
    def test_delete_removes_form_and_everything_under_it(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())
        response_repository.submit_response(self.db, form.id, {form.fields[0].id: "Ada"})

        form_repository.delete_form(self.db, form.id, OWNER_ID)

        for model in (Form, FormField, FieldOption, FormResponse, ResponseValue):
            self.assertEqual(self.count(model), 0, model.__tablename__)
        with self.assertRaises(NotFound):
            form_repository.get_form(self.db, form.id)

    def test_non_owner_cannot_delete(self):
        form = form_repository.create_form(self.db, OWNER_ID, _draft())
        with self.assertRaises(Unauthorized):
            form_repository.delete_form(self.db, form.id, OTHER_ID)
        self.assertEqual(self.count(Form), 1)
