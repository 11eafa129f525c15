"""Reading Docker and OCI image archives into layer trees."""