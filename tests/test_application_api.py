"""
API tests for applications: submission, owner and tasker transitions, the
cooldown response, the owner's grouped view with match scores, and the
cooldown and rating status endpoints.
"""

from decimal import Decimal
from unittest import mock
from django.test import TestCase, override_settings
from django.urls import reverse
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework import status

from core import applications, jobs
from core.models import Application


User = get_user_model()

MATCHING_URL = 'http://matching.test/api'


def matching_response(payload, service_status='success'):
    response = mock.Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {'status': service_status, 'response': payload, 'message': ''}
    return response


class ApplicationAPITestBase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(
            username='customer',
            email='customer@test.com',
            password='testpass123',
            user_type='customer'
        )
        self.tasker = User.objects.create_user(
            username='tasker',
            email='tasker@test.com',
            password='testpass123',
            user_type='tasker'
        )
        self.tasker2 = User.objects.create_user(
            username='tasker2',
            email='tasker2@test.com',
            password='testpass123',
            user_type='tasker'
        )
        self.job = jobs.create_job(
            self.customer,
            title='Deep clean apartment',
            description='Two bedrooms, one bathroom.',
            budget=Decimal('220.00'),
        )

    def apply(self, user, **extra):
        self.client.force_authenticate(user=user)
        data = {'job_id': self.job.id}
        data.update(extra)
        return self.client.post(reverse('application_list'), data, format='json')

    def patch(self, user, application_id, data):
        self.client.force_authenticate(user=user)
        return self.client.patch(
            reverse('application_detail', kwargs={'application_id': application_id}),
            data,
            format='json'
        )


class SubmitApplicationAPITests(ApplicationAPITestBase):

    def test_tasker_submits_application(self):
        response = self.apply(self.tasker, cover_letter='Spotless results.', proposed_budget='200.00')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], Application.STATUS_PENDING)
        self.assertEqual(response.data['cover_letter'], 'Spotless results.')
        self.assertEqual(response.data['proposed_budget'], '200.00')
        self.assertEqual(response.data['job_id'], self.job.id)
        self.assertNotIn('match_percentage', response.data)

    def test_customer_cannot_apply(self):
        response = self.apply(self.customer)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'forbidden')

    def test_duplicate_active_application_is_conflict(self):
        self.apply(self.tasker)
        response = self.apply(self.tasker)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_missing_job_id(self):
        self.client.force_authenticate(user=self.tasker)
        response = self.client.post(reverse('application_list'), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('job_id', response.data['errors'])

    def test_unknown_job(self):
        self.client.force_authenticate(user=self.tasker)
        response = self.client.post(reverse('application_list'), {'job_id': 999999}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_reapply_inside_cooldown_reports_remaining_time(self):
        created = self.apply(self.tasker)
        response = self.patch(self.tasker, created.data['id'], {'status': 'withdrawn'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.apply(self.tasker)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'cooldown_active')
        self.assertGreater(response.data['seconds_remaining'], 3500)
        self.assertLessEqual(response.data['seconds_remaining'], 3600)
        self.assertTrue(response.data['detail'].startswith('Cooldown remaining:'))
        self.assertTrue(response.data['detail'].endswith('minutes.'))


class ApplicationTransitionAPITests(ApplicationAPITestBase):

    def setUp(self):
        super().setUp()
        self.application = applications.create_application(self.job.id, self.tasker)

    def test_owner_accepts(self):
        response = self.patch(self.customer, self.application.id, {'status': 'accepted'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Application.STATUS_ACCEPTED)
        self.assertIsNotNone(response.data['accepted_at'])

    def test_owner_rejects(self):
        response = self.patch(self.customer, self.application.id, {'status': 'rejected'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['was_fired'])

    def test_tasker_cannot_accept_self(self):
        response = self.patch(self.tasker, self.application.id, {'status': 'accepted'})

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, Application.STATUS_PENDING)

    def test_invalid_status_value(self):
        response = self.patch(self.customer, self.application.id, {'status': 'pending'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data['errors'])

    def test_termination_requires_reason(self):
        applications.accept_application(self.application.id, self.customer)
        jobs.start_job(self.job.id, self.customer)

        response = self.patch(self.customer, self.application.id, {'status': 'rejected'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid')
        self.assertIn('reason', response.data['errors'])

        response = self.patch(self.customer, self.application.id, {
            'status': 'rejected', 'reason': 'Broke a vase and hid it.'
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['was_fired'])
        self.assertEqual(response.data['termination_reason'], 'Broke a vase and hid it.')

    def test_tasker_resigns(self):
        applications.accept_application(self.application.id, self.customer)
        jobs.start_job(self.job.id, self.customer)

        response = self.patch(self.tasker, self.application.id, {
            'status': 'withdrawn', 'reason': 'Schedule conflict.'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['has_resigned'])
        self.assertEqual(response.data['resignation_reason'], 'Schedule conflict.')

    def test_transition_on_finished_job_is_conflict(self):
        applications.accept_application(self.application.id, self.customer)
        jobs.start_job(self.job.id, self.customer)
        jobs.finish_job(self.job.id, self.customer)

        response = self.patch(self.tasker, self.application.id, {'status': 'withdrawn', 'reason': 'Late'})

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_detail_visibility(self):
        url = reverse('application_detail', kwargs={'application_id': self.application.id})

        self.client.force_authenticate(user=self.tasker)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)

        self.client.force_authenticate(user=self.customer)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)

        self.client.force_authenticate(user=self.tasker2)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN)


class ApplicationListAPITests(ApplicationAPITestBase):

    def setUp(self):
        super().setUp()
        self.first = applications.create_application(self.job.id, self.tasker)
        self.second = applications.create_application(self.job.id, self.tasker2)

    def test_tasker_sees_only_own_applications(self):
        self.client.force_authenticate(user=self.tasker)
        response = self.client.get(reverse('application_list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([a['id'] for a in response.data['results']], [self.first.id])

    def test_customer_sees_applications_to_their_jobs(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.get(reverse('application_list'), {'tasker': self.tasker2.id})

        self.assertEqual([a['id'] for a in response.data['results']], [self.second.id])

    def test_bad_filter(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.get(reverse('application_list'), {'job': 'abc'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_my_applications(self):
        self.client.force_authenticate(user=self.tasker2)
        response = self.client.get(reverse('my_applications'))

        self.assertEqual([a['id'] for a in response.data['results']], [self.second.id])

        self.client.force_authenticate(user=self.customer)
        self.assertEqual(self.client.get(reverse('my_applications')).status_code, status.HTTP_403_FORBIDDEN)


class JobApplicationsAPITests(ApplicationAPITestBase):

    def setUp(self):
        super().setUp()
        self.first = applications.create_application(self.job.id, self.tasker)
        self.second = applications.create_application(self.job.id, self.tasker2)
        self.url = reverse('job_applications', kwargs={'job_id': self.job.id})

    def test_grouped_without_matching_service(self):
        applications.accept_application(self.first.id, self.customer)
        self.client.force_authenticate(user=self.customer)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['job_id'], self.job.id)
        self.assertEqual([a['id'] for a in response.data['active']], [self.first.id])
        self.assertEqual([a['id'] for a in response.data['pending']], [self.second.id])
        self.assertEqual(response.data['terminated'], [])
        self.assertEqual(response.data['withdrawn'], [])
        self.assertIsNone(response.data['pending'][0]['match_percentage'])

    @override_settings(MATCHING_SERVICE_URL=MATCHING_URL)
    def test_pending_ordered_by_match_percentage(self):
        third_tasker = User.objects.create_user(
            username='tasker3', email='tasker3@test.com', password='x', user_type='tasker'
        )
        third = applications.create_application(self.job.id, third_tasker)
        scores = [
            {'tasker_id': self.tasker.id, 'match_percentage': 40},
            {'tasker_id': third_tasker.id, 'match_percentage': 92.5},
        ]
        self.client.force_authenticate(user=self.customer)

        with mock.patch('requests.Session.get', return_value=matching_response(scores)) as get:
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(get.call_count, 1)
        self.assertEqual(get.call_args[0][0], f'{MATCHING_URL}/jobs/{self.job.id}/matches')
        pending = response.data['pending']
        self.assertEqual([a['id'] for a in pending], [third.id, self.first.id, self.second.id])
        self.assertEqual([a['match_percentage'] for a in pending], [92.5, 40.0, None])

    @override_settings(MATCHING_SERVICE_URL=MATCHING_URL)
    def test_matching_failure_degrades_to_no_scores(self):
        self.client.force_authenticate(user=self.customer)

        with mock.patch('requests.Session.get', return_value=matching_response(None, 'error')):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['pending']), 2)
        self.assertTrue(all(a['match_percentage'] is None for a in response.data['pending']))

    def test_only_owner_can_view(self):
        self.client.force_authenticate(user=self.tasker)
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'forbidden')


class JobMatchesAPITests(ApplicationAPITestBase):

    def test_disabled_service_is_503(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.get(reverse('job_matches', kwargs={'job_id': self.job.id}))

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['code'], 'matching_unavailable')

    @override_settings(MATCHING_SERVICE_URL=MATCHING_URL)
    def test_ranked_matches(self):
        scores = [
            {'tasker_id': self.tasker.id, 'match_percentage': 55},
            {'tasker_id': self.tasker2.id, 'match_percentage': 80},
        ]
        self.client.force_authenticate(user=self.customer)

        with mock.patch('requests.Session.get', return_value=matching_response(scores)):
            response = self.client.get(reverse('job_matches', kwargs={'job_id': self.job.id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['tasker_id'] for m in response.data['matches']], [self.tasker2.id, self.tasker.id])

    @override_settings(MATCHING_SERVICE_URL=MATCHING_URL)
    def test_single_match_percentage_for_tasker_and_owner(self):
        url = reverse('job_tasker_match', kwargs={'job_id': self.job.id, 'tasker_id': self.tasker.id})

        for user in (self.tasker, self.customer):
            self.client.force_authenticate(user=user)
            with mock.patch('requests.Session.get', return_value=matching_response(64.5)) as get:
                response = self.client.get(url)

            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['match_percentage'], 64.5)
            self.assertEqual(
                get.call_args[0][0], f'{MATCHING_URL}/jobs/{self.job.id}/matches/{self.tasker.id}'
            )

    def test_single_match_hidden_from_other_taskers(self):
        url = reverse('job_tasker_match', kwargs={'job_id': self.job.id, 'tasker_id': self.tasker.id})
        self.client.force_authenticate(user=self.tasker2)

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'forbidden')

    def test_single_match_unknown_tasker(self):
        url = reverse('job_tasker_match', kwargs={'job_id': self.job.id, 'tasker_id': self.customer.id})
        self.client.force_authenticate(user=self.customer)

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TaskerJobMatchesAPITests(ApplicationAPITestBase):

    def setUp(self):
        super().setUp()
        self.second_job = jobs.create_job(
            self.customer,
            title='Assemble wardrobe',
            description='Flat pack, two doors.',
            budget=Decimal('90.00'),
        )
        self.closed_job = jobs.create_job(
            self.customer,
            title='Cancelled job',
            description='No longer needed.',
            budget=Decimal('50.00'),
        )
        jobs.cancel_job(self.closed_job.id, self.customer)
        self.url = reverse('tasker_job_matches')

    @override_settings(MATCHING_SERVICE_URL=MATCHING_URL)
    def test_open_jobs_ranked_for_tasker(self):
        scores = [
            {'job_id': self.job.id, 'match_percentage': 35},
            {'job_id': self.second_job.id, 'match_percentage': 90},
            {'job_id': self.closed_job.id, 'match_percentage': 99},
        ]
        self.client.force_authenticate(user=self.tasker)

        with mock.patch('requests.Session.get', return_value=matching_response(scores)) as get:
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(get.call_args[0][0], f'{MATCHING_URL}/taskers/{self.tasker.id}/matches')
        self.assertEqual([j['id'] for j in response.data['jobs']], [self.second_job.id, self.job.id])
        self.assertEqual([j['match_percentage'] for j in response.data['jobs']], [90.0, 35.0])

    def test_customers_are_refused(self):
        self.client.force_authenticate(user=self.customer)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_disabled_service_is_503(self):
        self.client.force_authenticate(user=self.tasker)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['code'], 'matching_unavailable')

    @override_settings(MATCHING_SERVICE_URL=MATCHING_URL)
    def test_job_list_carries_scores_for_taskers_only(self):
        scores = [{'job_id': self.job.id, 'match_percentage': 72}]

        self.client.force_authenticate(user=self.tasker)
        with mock.patch('requests.Session.get', return_value=matching_response(scores)):
            response = self.client.get(reverse('job_list'), {'status': 'open'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        by_id = {j['id']: j['match_percentage'] for j in response.data['results']}
        self.assertEqual(by_id, {self.job.id: 72.0, self.second_job.id: None})

        self.client.force_authenticate(user=self.customer)
        with mock.patch('requests.Session.get') as get:
            response = self.client.get(reverse('job_list'))

        get.assert_not_called()
        self.assertNotIn('match_percentage', response.data['results'][0])


class CooldownAndRatingsAPITests(ApplicationAPITestBase):

    def test_cooldown_status_for_tasker(self):
        url = reverse('job_cooldown', kwargs={'job_id': self.job.id})
        self.client.force_authenticate(user=self.tasker)

        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['can_apply'])
        self.assertEqual(response.data['seconds_remaining'], 0)

        application = applications.create_application(self.job.id, self.tasker)
        applications.withdraw_application(application.id, self.tasker)

        response = self.client.get(url)
        self.assertFalse(response.data['can_apply'])
        self.assertTrue(response.data['cooldown_active'])
        self.assertGreater(response.data['seconds_remaining'], 0)

    def test_cooldown_status_is_for_taskers_only(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.get(reverse('job_cooldown', kwargs={'job_id': self.job.id}))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_rating_status_visibility(self):
        application = applications.create_application(self.job.id, self.tasker)
        applications.accept_application(application.id, self.customer)
        jobs.start_job(self.job.id, self.customer)
        jobs.finish_job(self.job.id, self.customer)
        url = reverse('job_ratings', kwargs={'job_id': self.job.id})

        self.client.force_authenticate(user=self.customer)
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['obligation_active'])
        self.assertFalse(response.data['all_customer_ratings_complete'])
        self.assertEqual(response.data['taskers'][0]['tasker_id'], self.tasker.id)

        self.client.force_authenticate(user=self.tasker)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)

        self.client.force_authenticate(user=self.tasker2)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN)
