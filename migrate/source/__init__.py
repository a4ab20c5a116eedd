"""Source drivers that find, order and read migration files from directories, memory, assets, S3 and GitHub."""