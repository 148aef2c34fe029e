import unittest
from datetime import datetime, timedelta, timezone

from backend.sitehub import db
from backend.sitehub.models import Notification

from backend.tests.api_case import ApiTestCase

BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class TestNotificationsApi(ApiTestCase):
    def notify(self, user, title, minutes=0):
        notification = Notification(
            user_id=user.id,
            title=title,
            message=f'{title} 알림',
            created_at=BASE_TIME + timedelta(minutes=minutes),
        )
        db.session.add(notification)
        db.session.commit()
        return notification

    def changes(self, user, since=None):
        url = '/api/notifications/changes'
        if since:
            url = f'{url}?since={since}'
        response = self.client.get(url, headers=self.headers(user))
        self.assertEqual(response.status_code, 200)
        return response.get_json()['data']

    def test_change_feed_cursor(self):
        self.notify(self.worker, '작업일지 승인', minutes=0)
        self.notify(self.worker, '자재 요청 승인', minutes=5)
        self.notify(self.manager, '작업일지 제출', minutes=6)

        feed = self.changes(self.worker)
        self.assertEqual([n['title'] for n in feed['items']], ['작업일지 승인', '자재 요청 승인'])
        self.assertFalse(feed['has_more'])
        self.assertEqual(feed['cursor'], '2026-03-02T09:05:00Z')

        feed = self.changes(self.worker, feed['cursor'])
        self.assertEqual(feed['items'], [])
        self.assertEqual(feed['cursor'], '2026-03-02T09:05:00Z')

        self.notify(self.worker, '급여명세서 발행', minutes=10)
        feed = self.changes(self.worker, feed['cursor'])
        self.assertEqual([n['title'] for n in feed['items']], ['급여명세서 발행'])

    def test_change_feed_resumes_within_same_timestamp(self):
        for title in ('첫째', '둘째', '셋째'):
            self.notify(self.worker, title, minutes=1)
        ordered = sorted(
            db.session.query(Notification).filter_by(user_id=self.worker.id),
            key=lambda n: str(n.id),
        )
        first = ordered[0]
        since = '2026-03-02T09:01:00Z'

        feed = self.changes(self.worker, f'{since}&since_id={first.id}')
        self.assertEqual([n['id'] for n in feed['items']], [str(n.id) for n in ordered[1:]])
        self.assertEqual(feed['cursor'], since)
        self.assertEqual(feed['cursor_id'], str(ordered[-1].id))

        feed = self.changes(self.worker, f"{feed['cursor']}&since_id={feed['cursor_id']}")
        self.assertEqual(feed['items'], [])
        self.assertEqual(feed['cursor_id'], str(ordered[-1].id))

    def test_change_feed_rejects_bad_cursor(self):
        response = self.client.get('/api/notifications/changes?since=yesterday', headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 400)
        response = self.client.get('/api/notifications/changes?since=2026-03-02T09:00:00Z&since_id=abc',
                                   headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 400)

    def test_mark_read(self):
        first = self.notify(self.worker, '작업일지 승인')
        self.notify(self.worker, '자재 요청 승인', minutes=1)
        other = self.notify(self.manager, '작업일지 제출')

        response = self.client.post('/api/notifications/read', headers=self.headers(self.worker),
                                    json={'ids': [str(first.id), str(other.id)]})
        self.assertEqual(response.get_json()['data']['updated'], 1)

        response = self.client.get('/api/notifications?unread=true', headers=self.headers(self.worker))
        self.assertEqual([n['title'] for n in response.get_json()['data']], ['자재 요청 승인'])

        self.client.post('/api/notifications/read-all', headers=self.headers(self.worker))
        response = self.client.get('/api/notifications/unread-count', headers=self.headers(self.worker))
        self.assertEqual(response.get_json()['data']['count'], 0)
        response = self.client.get('/api/notifications/unread-count', headers=self.headers(self.manager))
        self.assertEqual(response.get_json()['data']['count'], 1)

    def test_mark_read_requires_ids(self):
        response = self.client.post('/api/notifications/read', headers=self.headers(self.worker), json={})
        self.assertEqual(response.status_code, 400)


if __name__ == '__main__':
    unittest.main()
