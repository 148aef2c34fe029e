import unittest

from backend.tests.api_case import ApiTestCase

URL = '/api/admin/organizations'


class TestOrganizationsApi(ApiTestCase):
    def create(self, user, **data):
        payload = {'name': '신규 협력사', 'type': 'partner'}
        payload.update(data)
        return self.client.post(URL, headers=self.headers(user), json=payload)

    def test_registration_number_checksum(self):
        response = self.create(self.system_admin, business_registration_number='123-45-67890')
        self.assertEqual(response.status_code, 400)

        response = self.create(self.system_admin, business_registration_number='123-45-67891')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()['data']['business_registration_number'], '1234567891')

        response = self.create(self.system_admin, name='다른 협력사', business_registration_number='1234567891')
        self.assertEqual(response.status_code, 409)

    def test_rejects_unknown_type_and_blank_name(self):
        self.assertEqual(self.create(self.system_admin, type='vendor').status_code, 400)
        self.assertEqual(self.create(self.system_admin, name='  ').status_code, 400)

    def test_restricted_admin_is_limited_to_own_organization(self):
        headers = self.headers(self.restricted_admin)
        self.assertEqual(self.create(self.restricted_admin).status_code, 403)

        response = self.client.get(URL, headers=headers)
        self.assertEqual([o['id'] for o in response.get_json()['data']], [str(self.org_a.id)])

        response = self.client.get(f'{URL}/{self.org_b.id}', headers=headers)
        self.assertEqual(response.status_code, 403)
        response = self.client.put(f'{URL}/{self.org_b.id}', headers=headers, json={'name': '변경'})
        self.assertEqual(response.status_code, 403)
        response = self.client.post(f'{URL}/{self.org_a.id}/deactivate', headers=headers)
        self.assertEqual(response.status_code, 403)

        response = self.client.put(f'{URL}/{self.org_a.id}', headers=headers, json={'name': '협력사 A2'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['name'], '협력사 A2')

    def test_deactivate_and_activate(self):
        headers = self.headers(self.system_admin)
        response = self.client.post(f'{URL}/{self.org_b.id}/deactivate', headers=headers)
        self.assertFalse(response.get_json()['data']['is_active'])
        response = self.client.post(f'{URL}/{self.org_b.id}/activate', headers=headers)
        self.assertTrue(response.get_json()['data']['is_active'])


if __name__ == '__main__':
    unittest.main()
