USERS_TABLE_NAME = 'users'
