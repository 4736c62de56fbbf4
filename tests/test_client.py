import unittest
import sys
import os
from unittest import mock
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import TrackerClient

class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TrackerClient(base_url='http://testserver/')

    @mock.patch('client.requests.post')
    def test_log_weight(self, post) -> None:
        post.return_value.json.return_value = {'id': 3}
        self.assertEqual(self.client.log_weight(80.5, date='2024-01-01T08:00:00'), 3)
        post.assert_called_once_with(
            'http://testserver/weights',
            params={'weight': 80.5, 'note': '', 'date': '2024-01-01T08:00:00'},
        )
        post.return_value.raise_for_status.assert_called_once()

    @mock.patch('client.requests.post')
    def test_save_workout(self, post) -> None:
        post.return_value.json.return_value = {'id': 1}
        exercises = [{'name': 'Pull Up', 'reps': 8}]
        self.assertEqual(self.client.save_workout('Pull', exercises, note='x'), 1)
        post.assert_called_once_with(
            'http://testserver/workouts',
            json={'category': 'Pull', 'exercises': exercises, 'note': 'x'},
        )

    @mock.patch('client.requests.get')
    def test_recovery(self, get) -> None:
        get.return_value.json.return_value = {'Chest': 2}
        self.assertEqual(self.client.recovery('2024-01-03'), {'Chest': 2})
        get.assert_called_once_with(
            'http://testserver/recovery', params={'today': '2024-01-03'}
        )

if __name__ == '__main__':
    unittest.main()
