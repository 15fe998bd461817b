"""Work Report System package.

Daily work-report submission service organized by feature modules
(work_reports, submission_queue) with a thin Flask controller layer over
service/repository layers.
"""
