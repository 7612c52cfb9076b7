"""Business logic for exams, attempts and proctoring logs"""
