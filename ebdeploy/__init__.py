"""ebdeploy - build and deploy a web application to AWS Elastic Beanstalk."""

__version__ = "0.1.0"
