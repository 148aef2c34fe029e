import io
import unittest

from backend.sitehub import db
from backend.sitehub.models import Document, Notification

from backend.tests.api_case import ApiTestCase

PDF_BYTES = b'%PDF-1.4\n1 0 obj\n<<>>\nendobj\n'


class TestDocumentsApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.outsider = self.make_user('outsider@example.com', '정외부', 'worker', self.org_b)

    def upload(self, user, title='안전교육 일지', site=None, mime_type='application/pdf', **form):
        data = {
            'file': (io.BytesIO(PDF_BYTES), 'safety.pdf', mime_type),
            'title': title,
        }
        if site is not None:
            data['site_id'] = str(site.id)
        data.update(form)
        return self.client.post('/api/documents', headers=self.headers(user), data=data,
                                content_type='multipart/form-data')

    def test_upload_and_download(self):
        response = self.upload(self.worker, site=self.site_a)
        self.assertEqual(response.status_code, 201)
        document = response.get_json()['data']
        self.assertEqual(document['file_size'], len(PDF_BYTES))
        self.assertEqual(document['organization_id'], str(self.org_a.id))
        self.assertEqual(document['owner']['full_name'], '이작업')

        response = self.client.get(f"/api/documents/{document['id']}/download", headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, PDF_BYTES)
        self.assertEqual(response.mimetype, 'application/pdf')
        self.assertIn('safety.pdf', response.headers['Content-Disposition'])

    def test_upload_validation(self):
        response = self.upload(self.worker, mime_type='text/plain')
        self.assertEqual(response.status_code, 400)
        response = self.upload(self.worker, title='  ')
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/documents', headers=self.headers(self.worker), data={'title': '빈 업로드'},
                                    content_type='multipart/form-data')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(db.session.query(Document).count(), 0)

    def test_site_documents_visible_to_assigned_users_only(self):
        document_id = self.upload(self.worker, site=self.site_a).get_json()['data']['id']

        response = self.client.get('/api/documents', headers=self.headers(self.manager))
        self.assertEqual([d['id'] for d in response.get_json()['data']], [document_id])
        response = self.client.get(f'/api/documents/{document_id}', headers=self.headers(self.manager))
        self.assertEqual(response.status_code, 200)

        response = self.client.get('/api/documents', headers=self.headers(self.outsider))
        self.assertEqual(response.get_json()['data'], [])
        response = self.client.get(f'/api/documents/{document_id}', headers=self.headers(self.outsider))
        self.assertEqual(response.status_code, 403)

        response = self.client.get('/api/documents?type=personal', headers=self.headers(self.manager))
        self.assertEqual(response.get_json()['data'], [])

    def test_share_grants_access_and_notifies(self):
        document_id = self.upload(self.worker).get_json()['data']['id']

        response = self.client.put(f'/api/documents/{document_id}', headers=self.headers(self.outsider),
                                   json={'title': '변경'})
        self.assertEqual(response.status_code, 403)

        response = self.client.post(f'/api/documents/{document_id}/share', headers=self.headers(self.worker),
                                    json={'user_ids': [str(self.outsider.id)], 'permission_type': 'edit'})
        self.assertEqual(response.status_code, 200)

        response = self.client.get('/api/documents/shared-with-me', headers=self.headers(self.outsider))
        shared = response.get_json()['data']
        self.assertEqual([d['id'] for d in shared], [document_id])
        self.assertEqual(shared[0]['permission']['permission_type'], 'edit')

        response = self.client.put(f'/api/documents/{document_id}', headers=self.headers(self.outsider),
                                   json={'title': '안전교육 일지 (수정)'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['title'], '안전교육 일지 (수정)')

        self.assertEqual(
            db.session.query(Notification).filter_by(user_id=self.outsider.id, related_entity_type='document').count(),
            1,
        )

    def test_share_rejects_past_expiry(self):
        document_id = self.upload(self.worker).get_json()['data']['id']
        response = self.client.post(f'/api/documents/{document_id}/share', headers=self.headers(self.worker),
                                    json={'user_ids': [str(self.manager.id)], 'expires_at': '2020-01-01T00:00:00Z'})
        self.assertEqual(response.status_code, 400)

    def test_restricted_callers_stay_in_own_organization(self):
        foreign_id = self.upload(self.outsider).get_json()['data']['id']
        own_id = self.upload(self.worker).get_json()['data']['id']

        response = self.client.get(f'/api/documents/{foreign_id}', headers=self.headers(self.restricted_admin))
        self.assertEqual(response.status_code, 403)
        response = self.client.delete(f'/api/documents/{foreign_id}', headers=self.headers(self.restricted_admin))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(db.session.query(Document).count(), 2)

        response = self.client.get('/api/documents', headers=self.headers(self.restricted_admin))
        self.assertEqual([d['id'] for d in response.get_json()['data']], [own_id])

        response = self.client.post(f'/api/documents/{own_id}/share', headers=self.headers(self.restricted_admin),
                                    json={'user_ids': [str(self.outsider.id)]})
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f'/api/documents/{own_id}', headers=self.headers(self.restricted_admin))
        self.assertEqual(response.status_code, 200)


if __name__ == '__main__':
    unittest.main()
