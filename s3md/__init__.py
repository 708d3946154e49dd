"""s3md: render markdown documents stored in an S3 bucket as embeddable HTML."""
