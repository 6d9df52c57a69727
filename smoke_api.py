# Manual smoke checks against a running server: uvicorn school_admin.main:app
import random

import requests

BASE = 'http://127.0.0.1:8000/api'


def safe_json(r):
    try:
        return r.json()
    except ValueError:
        return r.text   # fallback for errors / non-JSON bodies


def run_checks():
    print('Dashboard stats')
    r = requests.get(BASE + '/stats')
    print(r.status_code, safe_json(r))

    print('Listing students (first 5)')
    r = requests.get(BASE + '/students?skip=0&limit=5')
    print(r.status_code, safe_json(r))

    for period in ('week', 'month', 'quarter', 'year', 'all'):
        r = requests.get(BASE + '/analytics', params={'period': period})
        body = safe_json(r)
        if r.status_code == 200:
            print(period, 'fees', body['financial']['feeCollection'],
                  'attendance rate', body['attendance']['attendanceRate'])
        else:
            print(period, r.status_code, body)

    print('Creating a test student')
    code = f'SMOKE-{random.randint(1, 100000)}'
    payload = {
        'studentId': code,
        'firstName': 'Test',
        'lastName': 'Student',
        'gender': 'female',
        'section': 'secondary',
        'class': 'Seven',
        'email': f'{code.lower()}@example.com',
    }
    r = requests.post(BASE + '/students', json=payload)
    print('create status', r.status_code, safe_json(r))

    # If creation failed → stop
    if r.status_code != 201:
        print("Student creation failed, stopping.")
        return

    sid = r.json().get('id')

    print('Recording a partial payment')
    r = requests.post(BASE + '/payments', json={'studentId': sid, 'amount': 500, 'status': 'partial', 'paidAmount': 200})
    print(r.status_code, safe_json(r))

    print('Moving student to highschool')
    r = requests.patch(BASE + f'/students/{sid}', json={'section': 'highschool'})
    print(r.status_code, safe_json(r))

    print('Payments for student')
    r = requests.get(BASE + f'/payments/student/{sid}')
    print(r.status_code, safe_json(r))

    print('Deleting student')
    r = requests.delete(BASE + f'/students/{sid}')
    print(r.status_code, safe_json(r) if r.content else '')


if __name__ == '__main__':
    run_checks()
