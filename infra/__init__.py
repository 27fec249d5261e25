"""Infrastructure modules for the Planning Poker App.

Provides the AWS CDK stack for the delivery pipeline and static hosting.
"""
